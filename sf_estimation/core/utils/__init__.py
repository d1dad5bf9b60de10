from .logger import setup_logger, parse_level

__all__ = ['setup_logger', 'parse_level']
