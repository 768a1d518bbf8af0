import sys
import queue
import logging
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import Union


class FFSLogHandler:
    formatter: logging.Formatter
    log_queue: queue.Queue
    log_listener: Union[QueueListener, None]

    def __init__(self, name: str, verbose: bool = True, log_dir: Union[Path, None] = None):
        # queue of log records, drained by the listener
        self.log_queue = queue.Queue()

        self.log_listener = None

        # Format for the log messages
        self.formatter = logging.Formatter('%(asctime)s [%(levelname)s] (%(name)s) %(message)s')

        log_file = Path(f"{name}.log") if log_dir is None else log_dir / f"{name}.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(self.formatter)
        handlers = [file_handler]

        self.verbose = verbose

        # If verbose, add a StreamHandler to print to console
        if self.verbose:
            stream_handler = logging.StreamHandler(sys.stdout)
            stream_handler.setFormatter(self.formatter)
            handlers.append(stream_handler)

        self.log_file = log_file
        self.log_listener = QueueListener(self.log_queue, *handlers, respect_handler_level=True)
        self.log_listener.start()

    def close(self):
        """
        Stops the log listener, flushing anything still queued, and closes its handlers
        """
        if self.log_listener:
            self.log_listener.stop()
            for handler in self.log_listener.handlers:
                handler.close()
            self.log_listener = None

    def __del__(self):
        """
        deconstructor
        Stops the log listener
        """
        self.close()

    def spinoff(self, name: str) -> logging.Logger:
        """Returns a logger configured to use the queue."""
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)

        # a logger spun off twice (e.g. one run after another) keeps only the newest queue
        for handler in list(logger.handlers):
            if isinstance(handler, QueueHandler):
                logger.removeHandler(handler)

        # Use QueueHandler to send log messages to the shared queue
        queue_handler = QueueHandler(self.log_queue)
        logger.addHandler(queue_handler)
        logger.propagate = False

        return logger
