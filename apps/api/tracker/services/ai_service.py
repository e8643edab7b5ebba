"""AI assistance - follow-up drafting and journey health checks.

Both helpers degrade to fixed fallback payloads instead of raising, so a
missing key or a provider outage never breaks the member screen.
"""

import json
import logging
from datetime import date

from pydantic import ValidationError

from tracker.db.enums import MessageDirection, Pathway
from tracker.db.models import Member
from tracker.schemas.ai import JourneyAnalysis, JourneyStatus
from tracker.services.ai_provider import AIProvider, ChatMessage

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Error: System configuration missing. Cannot generate message."
FAILED_MESSAGE = "Sorry, I couldn't generate a message right now. Please try again later."

NOT_CONFIGURED_ANALYSIS = JourneyAnalysis(
    status=JourneyStatus.ON_TRACK,
    reasoning="Configure API Key for analysis.",
    suggested_action="Check settings",
)
FAILED_ANALYSIS = JourneyAnalysis(
    status=JourneyStatus.NEEDS_ATTENTION,
    reasoning="Analysis temporarily unavailable",
    suggested_action="Review manually",
)

JOURNEY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "status": {"type": "STRING", "enum": [s.value for s in JourneyStatus]},
        "reasoning": {"type": "STRING"},
        "suggestedAction": {"type": "STRING"},
    },
    "required": ["status", "reasoning", "suggestedAction"],
}

PATHWAY_LABELS = {Pathway.NEWCOMER.value: "Newcomer", Pathway.NEW_BELIEVER.value: "New Believer"}


def _follow_up_prompt(member: Member, stage_name: str, church_name: str, today: date, context: str | None) -> str:
    days_since_joined = (today - member.joined_date).days
    prompt = (
        f"You are a helpful assistant for a church called '{church_name}'.\n"
        "Draft a short, warm and friendly SMS message (under 160 characters ideally, "
        f"200 at most) to a church member named {member.first_name}.\n\n"
        "Context:\n"
        f"- Pathway: {PATHWAY_LABELS.get(member.pathway, member.pathway)}\n"
        f"- Current stage: {stage_name}\n"
        f"- Days since joining: {days_since_joined}\n"
        f"- Tags: {', '.join(member.tags or [])}\n"
    )
    if context:
        prompt += f"- Staff context: {context}\n"
    prompt += (
        "\nThe tone should be personal, encouraging and not overly formal. "
        f"Do not use placeholders like [Your Name]; end with ' - The Team at {church_name}'."
    )
    return prompt


async def generate_follow_up(
    provider: AIProvider | None,
    member: Member,
    stage_name: str,
    church_name: str,
    context: str | None = None,
    today: date | None = None,
) -> str:
    """Draft an SMS for the member. Returns a fallback string on any failure."""
    if provider is None:
        return MISSING_KEY_MESSAGE
    prompt = _follow_up_prompt(member, stage_name, church_name, today or date.today(), context)
    try:
        response = await provider.chat([ChatMessage(role="user", content=prompt)])
    except Exception as e:
        logger.warning(f"Follow-up generation failed for member {member.id}: {e}")
        return FAILED_MESSAGE
    return response.content.strip() or FAILED_MESSAGE


def _journey_prompt(member: Member, stage_name: str, today: date) -> str:
    outbound = [m for m in member.message_log if m.direction == MessageDirection.OUTBOUND.value]
    if outbound:
        last = outbound[-1]
        days = (today - last.timestamp.date()).days
        interaction = f"{last.channel} ({days} days ago)"
    else:
        interaction = "None (No recorded messages)"
    recent_notes = [n.text for n in member.notes[-3:]]
    return (
        "Analyze this church member's integration progress:\n"
        f"Name: {member.first_name}\n"
        f"Joined: {member.joined_date.isoformat()} (Current Date: {today.isoformat()})\n"
        f"Pathway: {member.pathway}\n"
        f"Current Stage: {stage_name}\n"
        f"Last Recorded Interaction: {interaction}\n"
        f"Recent Notes context: {json.dumps(recent_notes)}\n\n"
        "Task:\n"
        "1. Determine status:\n"
        "   - 'On Track': Joined recently OR has interaction/stage movement within last 14 days.\n"
        "   - 'Needs Attention': No interaction for 14-30 days OR notes indicate questions/hesitation.\n"
        "   - 'Stalled': No interaction for 30+ days OR stuck in stage 1 for > 3 weeks.\n"
        "2. Provide reasoning (max 15 words).\n"
        "3. Suggest one concrete next step (max 6 words)."
    )


async def analyze_journey(
    provider: AIProvider | None,
    member: Member,
    stage_name: str,
    today: date | None = None,
) -> JourneyAnalysis:
    """Classify the member's engagement. Returns a fallback analysis on any failure."""
    if provider is None:
        return NOT_CONFIGURED_ANALYSIS
    prompt = _journey_prompt(member, stage_name, today or date.today())
    try:
        response = await provider.chat(
            [ChatMessage(role="user", content=prompt)],
            temperature=0.2,
            response_schema=JOURNEY_SCHEMA,
        )
        payload = json.loads(response.content)
        return JourneyAnalysis(
            status=payload["status"],
            reasoning=payload["reasoning"],
            suggested_action=payload["suggestedAction"],
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
        logger.warning(f"Journey analysis returned unusable output for member {member.id}: {e}")
        return FAILED_ANALYSIS
    except Exception as e:
        logger.warning(f"Journey analysis failed for member {member.id}: {e}")
        return FAILED_ANALYSIS
