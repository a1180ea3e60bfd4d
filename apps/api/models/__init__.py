"""Models package."""

from .user import User
from .app import App
from .app_update import AppUpdate
from .deployment import Deployment
from .share_link import ShareLink
from .feedback import Feedback
from .client_task import ClientTask
from .task_completion import TaskCompletion
