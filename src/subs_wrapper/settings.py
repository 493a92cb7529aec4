from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Subtitle wrapper settings.

    All settings can be overridden via environment variables or a .env file,
    using uppercase names (e.g. DEFAULT_CHARSET=cp1252). List and mapping
    values are given as JSON (e.g. LANGUAGES='["sl","hr","en"]').

    Fallback tiers:
        ``languages`` is searched in order; a later language is only tried
        once every query of the previous one has failed.
    """
    upstream_base: str = "https://2ecbbd610840-podnapisi.baby-beamup.club"
    cinemeta_base: str = "https://v3-cinemeta.strem.io"
    index_base: str = "https://www.podnapisi.net"

    languages: List[str] = ["sl", "en"]
    language_labels: Dict[str, str] = {"sl": "Slovenian", "en": "English"}
    default_charset: str = "cp1250"

    request_timeout: float = 15.0
    max_detail_links: int = 3
    fallback_concurrency: int = 3  # 1 = strictly sequential search
    outbound_max_concurrent: int = 4
    outbound_min_interval: float = 0.2  # seconds between index requests
    user_agent: str = "Mozilla/5.0 (SubsWrapper)"

    public_base_url: Optional[str] = None
    force_https: bool = False
    port: int = 7000

    log_level: str = "INFO"
    json_logs: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def language_label(self, code: str) -> str:
        return self.language_labels.get(code, code)


settings = Settings()
