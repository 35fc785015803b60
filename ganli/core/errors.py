"""Domain error taxonomy.

Services raise these; ``ganli.main`` renders them as ``{"detail", "code"}``
JSON with the class's HTTP status. Each error maps to a different action on
the user's side (fix the input, buy more quota, try again later), so the
``code`` is stable and meant for clients to branch on.
"""


class GanliError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(GanliError):
    status_code = 422
    code = "validation_error"
    default_detail = "Invalid input"


class QuotaExceeded(GanliError):
    status_code = 402
    code = "quota_exceeded"
    default_detail = "No analysis quota left, upgrade or recharge your plan"


class AnalysisUnavailable(GanliError):
    """The LLM gateway (or a pipeline stage built on it) could not produce a result."""

    status_code = 502
    code = "analysis_unavailable"
    default_detail = "Analysis service is temporarily unavailable, please try again"

    def __init__(self, detail: str | None = None, stage: str | None = None) -> None:
        super().__init__(detail)
        self.stage = stage


class AnalysisFailed(GanliError):
    status_code = 502
    code = "analysis_failed"
    default_detail = "Analysis failed, please try again"


class NotFound(GanliError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class Forbidden(GanliError):
    status_code = 403
    code = "forbidden"
    default_detail = "Not allowed"


class QueueUnavailable(GanliError):
    status_code = 503
    code = "queue_unavailable"
    default_detail = "Analysis queue is unavailable, please try again"


class DatabaseUnavailable(GanliError):
    status_code = 503
    code = "database_unavailable"
    default_detail = "Service temporarily unavailable"
