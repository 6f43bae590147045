from enum import Enum

from .models import UserProfile


class AudienceSegment(str, Enum):
    NEW_VISITOR = "new_visitor"
    RETURNING_USER = "returning_user"
    POWER_USER = "power_user"
    BILLING_INTERESTED = "billing_interested"
    TECHNICAL_USER = "technical_user"
    INTEGRATION_SEEKER = "integration_seeker"
    ACCOUNT_MANAGEMENT = "account_management"
    FRUSTRATED_USER = "frustrated_user"
    ENGAGED_LEARNER = "engaged_learner"


def primary_segment(profile: UserProfile) -> AudienceSegment:
    """First matching rule wins; rules are checked top to bottom."""
    if profile.visit_count == 1:
        return AudienceSegment.NEW_VISITOR
    if profile.engagement_score > 80:
        return AudienceSegment.POWER_USER
    if "billing" in profile.content_affinities:
        return AudienceSegment.BILLING_INTERESTED
    if "api" in profile.content_affinities or "integration" in profile.content_affinities:
        return AudienceSegment.TECHNICAL_USER
    if len(profile.ticket_categories) > 3:
        return AudienceSegment.FRUSTRATED_USER
    if len(profile.interests) > 5:
        return AudienceSegment.ENGAGED_LEARNER
    return AudienceSegment.RETURNING_USER
