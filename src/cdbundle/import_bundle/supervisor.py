"""Drive the transfer engine through a plan, honouring cancellation."""

import enum
import logging
import threading
from typing import Callable

from ..core.ports import TransferEngine
from ..errors import OperationCancelled, TransferFailed
from .models import TransferPlan

log = logging.getLogger(__name__)


class Checkpoint(str, enum.Enum):
    """Points at which an import polls its cancel flag."""

    BEFORE_PLAN = "before_plan"
    BEFORE_REGISTER = "before_register"
    BEFORE_EXECUTE = "before_execute"


CheckpointHook = Callable[[Checkpoint], None]


def check_cancelled(
    cancel: threading.Event,
    checkpoint: Checkpoint,
    on_checkpoint: CheckpointHook | None = None,
) -> None:
    """Run the checkpoint hook, then raise OperationCancelled if cancellation was requested."""
    if on_checkpoint is not None:
        on_checkpoint(checkpoint)
    if cancel.is_set():
        log.info("Import cancelled at %s", checkpoint.value)
        raise OperationCancelled(checkpoint.value)


def execute(
    plan: TransferPlan,
    engine: TransferEngine,
    cancel: threading.Event,
    on_checkpoint: CheckpointHook | None = None,
) -> None:
    """
    Register every planned transfer with the engine and run it.

    Args:
        plan: Transfer plan to execute
        engine: Transfer engine performing the copies/moves
        cancel: Cancel flag, checked before registering and before running
        on_checkpoint: Optional hook called at each checkpoint

    Raises:
        OperationCancelled: If cancelled at a checkpoint or by the engine
        TransferFailed: If the engine fails; partial writes are left for rollback
    """
    check_cancelled(cancel, Checkpoint.BEFORE_REGISTER, on_checkpoint)
    for transfer in plan.transfers:
        engine.register_transfer(transfer.src, transfer.dst)

    check_cancelled(cancel, Checkpoint.BEFORE_EXECUTE, on_checkpoint)
    try:
        engine.run()
    except OperationCancelled:
        raise
    except Exception as e:
        log.error("Transfer failed: %s", e)
        raise TransferFailed(e, path=plan.bundle_path or None) from e
