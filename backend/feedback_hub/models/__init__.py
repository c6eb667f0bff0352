from feedback_hub.models.audit_log import AuditLog
from feedback_hub.models.email_confirmation import EmailConfirmation
from feedback_hub.models.global_sections import GlobalSections
from feedback_hub.models.response_answer import ResponseAnswer
from feedback_hub.models.survey import Survey
from feedback_hub.models.survey_response import SurveyResponse
from feedback_hub.models.survey_token import SurveyToken
from feedback_hub.models.user import User

__all__ = [
    "AuditLog",
    "EmailConfirmation",
    "GlobalSections",
    "ResponseAnswer",
    "Survey",
    "SurveyResponse",
    "SurveyToken",
    "User",
]
