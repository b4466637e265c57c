"""任务项状态通知的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from print_mosaic.core.models import ItemStatus


@dataclass(slots=True, frozen=True)
class StatusUpdate:
    """单个任务项的状态变化。"""

    item_id: int
    name: str
    status: ItemStatus
    message: Optional[str] = None


StatusCallback = Optional[Callable[[StatusUpdate], None]]
