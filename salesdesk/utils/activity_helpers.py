from sqlalchemy.ext.asyncio import AsyncSession
from salesdesk.models.support.activity_models import QuotationActivity
from salesdesk.constants.activity_templates import ACTIVITY_TEMPLATES
from salesdesk.constants.activity_codes import ActivityCode


def render_activity(code: ActivityCode, **context) -> str:
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        return template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )


async def emit_activity(
    db: AsyncSession,
    *,
    actor,
    code: ActivityCode,
    **context,
):
    """Stage an audit row; it is committed with the caller's transaction."""
    message = render_activity(
        code,
        actor_role=actor.role,
        actor_name=actor.username,
        **context,
    )

    db.add(
        QuotationActivity(
            user_id=actor.id,
            username_snapshot=actor.username,
            role_snapshot=str(actor.role),
            activity_code=code.value,
            target_name=context.get("target_name"),
            message=message,
        )
    )
