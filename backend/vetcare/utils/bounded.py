import asyncio
from typing import Awaitable, TypeVar

from pymongo.errors import PyMongoError

from vetcare.errors import ProcessingError
from vetcare.utils.logger import get_logger

logger = get_logger("store")

T = TypeVar("T")


async def bounded(op: Awaitable[T], timeout: float, action: str, source: str = "Store") -> T:
    """Await a database call with an upper bound.

    Timeouts and driver errors become ``ProcessingError`` so callers see one kind.
    """
    try:
        return await asyncio.wait_for(op, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"⏱️ {source} timed out while {action}")
        raise ProcessingError(f"{source} timed out while {action}") from e
    except PyMongoError as e:
        logger.error(f"❌ {source} error while {action}: {e}")
        raise ProcessingError(f"{source} failed while {action}") from e
