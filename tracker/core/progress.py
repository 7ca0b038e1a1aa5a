"""项目进度计算

服务端重算和客户端乐观更新共用同一套规则。
"""
import math
from enum import Enum
from typing import Iterable


class ProjectStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


def clamp_progress(value: float) -> int:
    """限制在0-100之间并四舍五入为整数，非有限数值抛出 ValueError"""
    value = float(value)
    if not math.isfinite(value):
        raise ValueError("progress must be a finite number")
    return max(0, min(100, round_half_up(value)))


def round_half_up(value: float) -> int:
    """四舍五入（.5 向远离零方向进位）"""
    if value < 0:
        return -round_half_up(-value)
    return int(value + 0.5)


def compute_progress(completed: int, total: int) -> int:
    """根据已完成任务数计算进度百分比"""
    if total <= 0:
        return 0
    # 整数运算避免浮点误差：round(100 * completed / total)
    return (200 * completed + total) // (2 * total)


def progress_from_flags(flags: Iterable[bool]) -> int:
    """根据任务完成标记列表计算进度"""
    flags = list(flags)
    return compute_progress(sum(1 for done in flags if done), len(flags))


def project_status(progress: int, task_count: int) -> ProjectStatus:
    """推导项目状态，状态不落库"""
    if progress >= 100:
        return ProjectStatus.COMPLETED
    if task_count > 0 or progress > 0:
        return ProjectStatus.IN_PROGRESS
    return ProjectStatus.NOT_STARTED
