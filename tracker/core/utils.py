"""通用工具函数"""
import json
from datetime import datetime, timezone
import uuid
from typing import Any, List


def generate_id() -> str:
    """生成实体ID"""
    return str(uuid.uuid4())


def load_json_list(raw: Any) -> List[Any]:
    """解析JSON文本列，解析失败或不是数组时返回空列表"""
    if raw is None or raw == "":
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


def dump_json_list(value: List[Any]) -> str:
    """序列化为JSON文本列"""
    return json.dumps(value, ensure_ascii=False, default=str)


def clean_text(value: Any, default: str) -> str:
    """去除首尾空白，为空时返回默认值"""
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def utcnow() -> datetime:
    """当前UTC时间（不带时区，直接落库）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
