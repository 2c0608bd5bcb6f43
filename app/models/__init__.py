from .user import User, UserProfile
from .task import StudyTask, TaskStatus
from .credo_log import CredoPracticeLog
from .chat_message import ChatMessage
from .weekly_report import WeeklyReport
from .note import Note

__all__ = [
    "User",
    "UserProfile",
    "StudyTask",
    "TaskStatus",
    "CredoPracticeLog",
    "ChatMessage",
    "WeeklyReport",
    "Note",
]
