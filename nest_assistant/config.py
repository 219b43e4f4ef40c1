from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 60.0
    intent_timeout_seconds: float = 15.0

    gateway_url: str = "http://localhost:8002/api/send-text"
    gateway_token: str = ""

    # Comma-separated sender ids excluded from all processing
    ignored_contacts: str = "0000000000"

    handoff_timeout_hours: float = 4.0
    dedup_ttl_seconds: int = 300
    dedup_sweep_interval_seconds: float = 60.0
    dedup_sweeper_enabled: bool = True

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def get_ignored_contacts(self) -> frozenset[str]:
        return frozenset(contact.strip() for contact in self.ignored_contacts.split(",") if contact.strip())


settings = Settings()
