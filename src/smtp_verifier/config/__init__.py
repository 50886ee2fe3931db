from smtp_verifier.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
