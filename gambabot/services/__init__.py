from .logger import LogWriter, setup_logging

__all__ = ["LogWriter", "setup_logging"]
