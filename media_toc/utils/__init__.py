from .buffered_logging import BufferedLogHandler, buffered_logger, flush_buffered_logs

__all__ = ['BufferedLogHandler', 'buffered_logger', 'flush_buffered_logs']
