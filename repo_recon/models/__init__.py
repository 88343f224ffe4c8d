# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .user import User  # noqa: F401
from .whitelisted_user import WhitelistedUser  # noqa: F401
from .api_key import ApiKey  # noqa: F401
from .repository import Repository  # noqa: F401
from .analysis import Analysis  # noqa: F401
from .comparison import Comparison, ComparisonRepository  # noqa: F401
from .job_status import AnalysisStatus, ComparisonStatus  # noqa: F401
from .queued_analysis import QueuedAnalysis  # noqa: F401
