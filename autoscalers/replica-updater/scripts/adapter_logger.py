import logging
import os


LOG_FILE_ENV = "ADAPTER_LOG_FILE"
LOG_LEVEL_ENV = "ADAPTER_LOG_LEVEL"
DEFAULT_LOG_FILE = "/tmp/adapter.log"
LOG_FORMAT = '%(asctime)s %(name)-12s - %(levelname)6s - %(message)s'


def level_from_env(default: int = logging.INFO) -> int:
    name = os.getenv(LOG_LEVEL_ENV, "").upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


class AdapterLogger:
    """Named logger backed by a stderr stream and a shared log file.

    The root logger is configured on first use only, so every module can
    build its own AdapterLogger without stacking handlers. stdout is left
    alone because the adaptation scripts write their results there.
    """

    def __init__(self, name: str, level: int | None = None, logfile: str | None = None):
        if level is None:
            level = level_from_env()
        if not logging.getLogger().handlers:
            sh = logging.StreamHandler()
            sh.setLevel(level)
            handlers: list[logging.Handler] = [sh]
            if logfile is None:
                logfile = os.getenv(LOG_FILE_ENV, DEFAULT_LOG_FILE)
            if logfile:
                fh = logging.FileHandler(logfile)
                fh.setLevel(level)
                handlers.append(fh)
            logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
        self.logger = logging.getLogger(name)
