from vadtime.config.settings import Settings

__all__ = ["Settings"]
