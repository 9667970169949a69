from .init import get_logger, log_summary, reset_logging, setup_logging

__all__ = ["get_logger", "log_summary", "reset_logging", "setup_logging"]
