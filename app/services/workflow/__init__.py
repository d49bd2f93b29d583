"""Video generation workflow.

- orchestrator: multi-stage pipeline run
- runner: bounded pool of runs
- progress: progress records and live listeners
- thumbnail: thumbnail fallback ladder
- shortcode / validation: prompt filling, parsing and quality checks
"""

from app.services.workflow.collaborators import Collaborators, ContentRepository
from app.services.workflow.context import PipelineContext
from app.services.workflow.orchestrator import WorkflowOrchestrator
from app.services.workflow.progress import ProgressRecord, ProgressReporter, ProgressSnapshot
from app.services.workflow.runner import RunLauncher
from app.services.workflow.thumbnail import ThumbnailLadder

__all__ = [
    "Collaborators",
    "ContentRepository",
    "PipelineContext",
    "ProgressRecord",
    "ProgressReporter",
    "ProgressSnapshot",
    "RunLauncher",
    "ThumbnailLadder",
    "WorkflowOrchestrator",
]
