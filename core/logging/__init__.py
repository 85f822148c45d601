from core.logging.logic.logger import EventLogger, configure_logging
from core.logging.models.log_entry import LogEntry

__all__ = ["EventLogger", "configure_logging", "LogEntry"]
