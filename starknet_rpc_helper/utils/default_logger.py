import sys
from pathlib import Path

from loguru import logger

from starknet_rpc_helper.utils.models.settings_model import LoggingConfig


FORMAT = '{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} | {message}'

# Create a library-specific logger instance
_rpc_logger = logger.bind(library='starknet_rpc_helper')


def create_level_filter(level: str):
    """
    Build a loguru filter that only lets records of exactly `level` through.

    Args:
        level (str): Level name, e.g. 'DEBUG'.

    Returns:
        Callable: A filter usable as the `filter` argument of `logger.add`.
    """
    def level_filter(record):
        return record['level'].name == level and record['extra'].get('library') == 'starknet_rpc_helper'
    return level_filter


def get_logger(module_name: str = 'StarknetRpcHelper'):
    """
    Get a logger instance with module binding.

    This uses the library-scoped logger with module name binding.
    No automatic configuration is performed.

    Args:
        module_name (str): Module name to bind to the logger.

    Returns:
        Logger: A bound logger instance scoped to this library.
    """
    return _rpc_logger.bind(module=module_name)


def configure_rpc_logging(config: LoggingConfig):
    """
    Configure the library-scoped logger.

    This must be called explicitly to get file logging or extra console
    sinks. It only adds sinks filtered to this library's records, so the host
    application's own loguru configuration is left alone.

    Args:
        config (LoggingConfig): The logging configuration to apply.

    Returns:
        list: Handler ids of the sinks that were added.
    """
    handler_ids = []
    if config.log_dir is not None:
        log_dir = Path(config.log_dir)
        if not log_dir.is_absolute():
            log_dir = Path.cwd() / log_dir

        log_dir.mkdir(parents=True, exist_ok=True, mode=0o755)

        for level, enabled in config.file_levels.items():
            if enabled:
                log_file = log_dir / f'{level.lower()}.log'
                handler_ids.append(
                    _rpc_logger.add(
                        str(log_file.absolute()),
                        level=level,
                        format=config.format,
                        filter=create_level_filter(level),
                        rotation=config.rotation,
                        retention=config.retention,
                        compression=config.compression,
                        backtrace=True,
                        diagnose=True,
                    ),
                )

    if config.enable_console_logging:
        for level, output_stream in config.console_levels.items():
            output = sys.stdout if output_stream == 'stdout' else sys.stderr
            handler_ids.append(
                _rpc_logger.add(
                    output,
                    level=level,
                    format=config.format,
                    filter=create_level_filter(level),
                    colorize=True,
                ),
            )
    return handler_ids


def disable_rpc_file_logging():
    """
    Remove file sinks from the library-scoped logger, keeping console output.
    """
    handlers_to_remove = []
    for handler_id, handler in _rpc_logger._core.handlers.items():
        sink = handler._sink
        # Only loguru's FileSink carries a _file attribute
        if hasattr(sink, '_file'):
            handlers_to_remove.append(handler_id)

    for handler_id in handlers_to_remove:
        try:
            _rpc_logger.remove(handler_id)
        except ValueError:
            pass  # Handler already removed


def enable_debug_logging():
    """
    Convenience function to enable debug and trace logging to console
    for the library-scoped logger only.
    """
    return _rpc_logger.add(
        sys.stdout,
        level='TRACE',
        format=FORMAT,
        filter=lambda record: (
            record['level'].name in ['DEBUG', 'TRACE'] and
            record['extra'].get('library') == 'starknet_rpc_helper'
        ),
        colorize=True,
    )


# Default logger instance - uses library-scoped logger with module binding
default_logger = get_logger('StarknetRpcHelper')
