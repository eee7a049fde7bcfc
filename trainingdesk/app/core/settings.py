import os


class Settings:
    def __init__(self):
        self.app_name = "Training Desk"
        self.api_version = "1.0.0"
        self.environment = os.getenv("TRAININGDESK_ENVIRONMENT", "development")
        self.database_url = os.getenv("TRAININGDESK_DATABASE_URL", "sqlite:///./trainingdesk.db")
        self.log_level = os.getenv("TRAININGDESK_LOG_LEVEL", "INFO")
        # Booking constants
        self.slot_granularity_minutes = 30
        self.min_session_minutes = 15
        self.max_session_minutes = 8 * 60

    @property
    def is_debug(self) -> bool:
        return self.environment == "development"


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
