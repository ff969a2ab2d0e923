"""Worker side: registry, dispatcher and the stdin/stdout request loop."""

from uiabridge.worker.dispatcher import Dispatcher
from uiabridge.worker.loop import WorkerLoop, WorkerState
from uiabridge.worker.registry import OperationRegistry, build_default_registry

__all__ = ["Dispatcher", "OperationRegistry", "WorkerLoop", "WorkerState", "build_default_registry"]
