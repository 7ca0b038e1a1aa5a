"""客户端：HTTP接口封装和乐观更新的状态缓存"""
from tracker.client.api import APIError, TrackerAPI, normalize_base_url
from tracker.client.debounce import Debouncer
from tracker.client.models import AppState, Comment, Project, Task, TeamMember
from tracker.client.store import TrackerStore

__all__ = [
    "APIError", "TrackerAPI", "normalize_base_url", "Debouncer",
    "AppState", "Comment", "Project", "Task", "TeamMember", "TrackerStore",
]
