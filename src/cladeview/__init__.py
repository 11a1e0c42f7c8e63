import sys

import structlog

from cladeview.clade import Clade, Model, Project, Tree
from cladeview.cladeview import CladeView
from cladeview.store import ResourceStore, StoreContext
from cladeview.training import TrainingOrchestrator

__all__ = ["Clade", "CladeView", "Model", "Project", "ResourceStore", "StoreContext", "TrainingOrchestrator", "Tree"]


def setup_logging():
    shared_processors = [
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.add_log_level,
    ]

    if sys.stderr.isatty():
        # If we're in a terminal, pretty print the logs.
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(),
        ]
    else:
        # Otherwise, output logs in JSON format
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        cache_logger_on_first_use=True,
    )


setup_logging()
