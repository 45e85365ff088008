from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"
    # Movement classification thresholds (knots / nm / minutes / degrees)
    STATIONARY_SPEED_THRESHOLD_KN: float = 0.5
    DWELL_SPEED_THRESHOLD_KN: float = 2.0
    MIN_TRANSIT_DISTANCE_NM: float = 5.0
    MIN_DURATION_MINUTES: float = 15.0
    MANEUVERING_HEADING_STD_DEV_DEG: float = 25.0
    ANCHORED_MAX_SPEED_KN: float = 3.0
    ANCHORED_MAX_DRIFT_NM_PER_HOUR: float = 0.8
    # Sensor-to-AIS correlation window
    DARK_MATCH_MAX_DISTANCE_NM: float = 1.0
    DARK_MATCH_MAX_TIME_DIFF_MINUTES: float = 30.0
    # Analyst override list (comma-separated string for env var support)
    FORCED_DARK_MMSIS: str = "316014621"
    # Optional YAML file extending the override list
    FORCED_DARK_CONFIG: str | None = None
    # Kystdatahuset AIS web service
    AIS_API_BASE_URL: str = "https://kystdatahuset.no/ws/api/ais"
    # External sensor classification service
    CLASSIFICATION_API_BASE_URL: str = "https://example.com/api"
    HTTP_TIMEOUT: float = 30.0

    def forced_dark_mmsis(self) -> frozenset[str]:
        """Parse FORCED_DARK_MMSIS into a set of MMSI strings."""
        return frozenset(m.strip() for m in self.FORCED_DARK_MMSIS.split(",") if m.strip())


settings = Settings()
