from ..exceptions import SuggestedAction
from .decisions import ActionKind, Allowed, Decision, Denied, action_name
from .entitlements import INACTIVE_PLAN_NAME, TRIAL_PLAN_NAME, SubscriptionLimits


def suggested_action_for(limits: SubscriptionLimits) -> SuggestedAction:
    if limits.plan_name in (TRIAL_PLAN_NAME, INACTIVE_PLAN_NAME):
        return SuggestedAction.CONTACT_SUPPORT
    return SuggestedAction.UPGRADE_PLAN


def service_limit_message(limits: SubscriptionLimits) -> str:
    if limits.plan_name == TRIAL_PLAN_NAME:
        if limits.days_remaining == 0:
            return "Your trial period has expired. Contact support to activate your subscription."
        return (
            f"You have used all {limits.max_services} services included in the trial. "
            "Contact support to activate your subscription."
        )
    if limits.plan_name == INACTIVE_PLAN_NAME:
        return "Your subscription is inactive. Contact support to reactivate your account."
    return (
        f"You have reached the monthly limit of {limits.max_services} services "
        f"for {limits.plan_name}. Upgrade your plan to continue."
    )


def user_limit_message(limits: SubscriptionLimits) -> str:
    if limits.plan_name == TRIAL_PLAN_NAME:
        return f"You have reached the limit of {limits.max_users} users for the trial period."
    if limits.plan_name == INACTIVE_PLAN_NAME:
        return "Your subscription is inactive. Contact support to reactivate your account."
    return f"You have reached the limit of {limits.max_users} users for {limits.plan_name}."


class QuotaValidator:
    """Map an action to the matching can-add flag of resolved limits.

    Actions without quota semantics always pass.
    """

    def check_quota(self, limits: SubscriptionLimits, action_kind: str) -> Decision:
        action = action_name(action_kind)
        if action == ActionKind.CREATE_SERVICE.value:
            if limits.can_add_services:
                return Allowed({"remaining_services": limits.remaining_services})
            return Denied(
                service_limit_message(limits),
                {
                    "current_services": limits.current_services,
                    "max_services": limits.max_services,
                    "plan_name": limits.plan_name,
                    "suggested_action": suggested_action_for(limits).value,
                },
            )
        if action == ActionKind.CREATE_USER.value:
            if limits.can_add_users:
                return Allowed({"remaining_users": limits.remaining_users})
            return Denied(
                user_limit_message(limits),
                {
                    "current_users": limits.current_users,
                    "max_users": limits.max_users,
                    "can_add_users": False,
                    "plan_name": limits.plan_name,
                    "suggested_action": suggested_action_for(limits).value,
                },
            )
        return Allowed()


__all__ = [
    "QuotaValidator",
    "suggested_action_for",
    "service_limit_message",
    "user_limit_message",
]
