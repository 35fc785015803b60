"""Import all models so SQLModel.metadata picks them up."""

from ganli.models.analysis_task import AnalysisTask, AnalysisTaskCreate, AnalysisTaskRead
from ganli.models.api_key import ApiKey
from ganli.models.candidate import Candidate, CandidateDetail, CandidateRead, CandidateSourceType
from ganli.models.quota_log import QuotaLog, QuotaLogRead, QuotaOperation
from ganli.models.report import (
    AnalysisStatus,
    Report,
    ReportPage,
    ReportRead,
    ReportSummary,
)
from ganli.models.subscription import (
    PlanType,
    QuotaRead,
    QuotaRecharge,
    Subscription,
    SubscriptionStatus,
)
from ganli.models.tenant import Tenant, TenantRead, TenantStatus
from ganli.models.user import User, UserRead, UserRole

__all__ = [
    "AnalysisStatus",
    "AnalysisTask",
    "AnalysisTaskCreate",
    "AnalysisTaskRead",
    "ApiKey",
    "Candidate",
    "CandidateDetail",
    "CandidateRead",
    "CandidateSourceType",
    "PlanType",
    "QuotaLog",
    "QuotaLogRead",
    "QuotaOperation",
    "QuotaRead",
    "QuotaRecharge",
    "Report",
    "ReportPage",
    "ReportRead",
    "ReportSummary",
    "Subscription",
    "SubscriptionStatus",
    "Tenant",
    "TenantRead",
    "TenantStatus",
    "User",
    "UserRead",
    "UserRole",
]
