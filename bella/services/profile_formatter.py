"""
Profile rendering for Bella's system prompt.

Turns the stored onboarding profile document into a short natural-language
description. Every rendering starts with the current date and time so the
model can reason about "next week".
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session as DbSession

from bella.lib.prompts import DEFAULT_PROFILE, fill_prompt_template
from bella.models.profile import UserProfile

logger = logging.getLogger(__name__)

_NYC_AREA = ("Jersey", "New York")


def temporal_context(now: datetime | None = None) -> str:
    """`Today is Monday, October 19, 2026. The current time is 14:05.`"""
    now = now or datetime.now()
    return (
        f"Today is {now:%A}, {now:%B} {now.day}, {now.year}. "
        f"The current time is {now:%H:%M}."
    )


def _joined(items: Any) -> str | None:
    if isinstance(items, list) and items:
        return ", ".join(str(item) for item in items)
    return None


def _age(date_of_birth: Any, today: date) -> int | None:
    if not date_of_birth:
        return None
    try:
        born = date.fromisoformat(str(date_of_birth)[:10])
    except ValueError:
        return None
    return today.year - born.year


def render_profile(data: dict[str, Any], now: datetime | None = None) -> str:
    """Render a profile document; sections with no data are left out."""
    now = now or datetime.now()
    personal = data.get("personal") or {}
    professional = data.get("professional") or {}
    schedule = data.get("schedule") or {}
    work_style = data.get("workStyle") or {}
    wellness = data.get("wellness") or {}
    commitments = data.get("commitments") or {}
    location = personal.get("location") or {}
    background = personal.get("background") or {}

    intro = f"You are planning for {personal.get('name') or 'the user'}"
    age = _age(personal.get("dateOfBirth"), now.date())
    if age:
        intro += f", a {age}-year-old"
    if professional.get("status"):
        intro += f" {professional['status']}"
    if professional.get("organization"):
        intro += f" at {professional['organization']}"
    if professional.get("role"):
        intro += f" studying/working in {professional['role']}"
    intro += "."
    city = location.get("city")
    if city:
        intro += f" They live in {city}"
        if background.get("livingStatus"):
            intro += f" ({background['livingStatus'].lower()})"
        intro += "."

    sections = [temporal_context(now), intro]

    lines = ["Personal Schedule:"]
    if schedule.get("wakeTime") and schedule.get("sleepTime"):
        lines.append(f"- Wakes at {schedule['wakeTime']}, sleeps at {schedule['sleepTime']}")
    work_hours = schedule.get("workHours") or {}
    if work_hours.get("start") and work_hours.get("end"):
        lines.append(f"- Work hours: {work_hours['start']} to {work_hours['end']}")
    if periods := _joined(schedule.get("productivePeriods")):
        lines.append(f"- Peak productivity: {periods}")
    if location.get("timezone"):
        lines.append(f"- Timezone: {location['timezone']}")
    sections.append("\n".join(lines))

    recurring = commitments.get("recurring") or []
    if recurring:
        lines = ["Weekly Commitments:"]
        for item in recurring:
            line = f"- {item.get('title')}: {item.get('day')}s at {item.get('time')}"
            if item.get("travelTime"):
                line += f" ({item['travelTime']} min travel time)"
            lines.append(line)
        sections.append("\n".join(lines))

    projects = commitments.get("projects") or []
    if projects:
        lines = ["Current Projects:"]
        for project in projects:
            line = f"- {project.get('name')}"
            if project.get("deadline"):
                line += f" (due {str(project['deadline'])[:10]})"
            if project.get("priority"):
                line += f" - {project['priority']} priority"
            lines.append(line)
        sections.append("\n".join(lines))

    goals = professional.get("goals") or {}
    short_term = _joined(goals.get("shortTerm"))
    long_term = _joined(goals.get("longTerm"))
    if short_term or long_term:
        lines = ["Goals & Priorities:"]
        if short_term:
            lines.append(f"- Short-term goals: {short_term}")
        if long_term:
            lines.append(f"- Long-term goals: {long_term}")
        if skills := _joined(goals.get("skillsDevelopment")):
            lines.append(f"- Skills development: {skills}")
        sections.append("\n".join(lines))

    lines = ["Work Style:"]
    if work_style.get("focusDuration"):
        lines.append(f"- Prefers {work_style['focusDuration']}-minute focus sessions")
    if prefs := _joined(work_style.get("taskPreferences")):
        lines.append(f"- Task preferences: {prefs}")
    if motivators := _joined(work_style.get("motivators")):
        lines.append(f"- Motivated by: {motivators}")
    breaks = schedule.get("breakPreferences") or {}
    if breaks.get("frequency") and breaks.get("duration"):
        lines.append(
            f"- Break preferences: {breaks['duration']}-minute breaks every {breaks['frequency']} hours"
        )
    sections.append("\n".join(lines))

    blockers = work_style.get("blockers") or []
    if blockers:
        sections.append("\n".join(["Challenges to Consider:", *(f"- {b}" for b in blockers)]))

    extras = []
    if values := _joined(background.get("personalValues")):
        extras.append(f"Personal Values: {values}")
    if stress := _joined(wellness.get("stressManagement")):
        extras.append(f"Stress Management: {stress}")
    if wellness.get("exerciseRoutine"):
        extras.append(f"Exercise Routine: {wellness['exerciseRoutine']}")
    if extras:
        sections.append("\n".join(extras))

    lines = [
        "Planning Preferences:",
        "- Include breaks and personal time",
        "- Balance work, study, and personal commitments",
    ]
    if city and any(area in city for area in _NYC_AREA):
        lines.append("- Account for travel time to NYC (1.5 hours each way)")
    lines += [
        "- Respect the user's schedule preferences and constraints",
        "- Don't over-schedule - leave buffer time for flexibility",
    ]
    sections.append("\n".join(lines))

    return "\n\n".join(sections)


def default_profile(now: datetime | None = None) -> str:
    return fill_prompt_template(DEFAULT_PROFILE.template, {"temporalContext": temporal_context(now)})


def format_user_profile(db: DbSession, user_id: str, now: datetime | None = None) -> str:
    """Render the stored profile for `user_id`, or the default text if there is none."""
    profile = db.get(UserProfile, user_id)
    if profile is None or not profile.data:
        logger.info("No profile stored for user %s, using default profile", user_id)
        return default_profile(now)
    return render_profile(profile.data, now)


__all__ = ["temporal_context", "render_profile", "default_profile", "format_user_profile"]
