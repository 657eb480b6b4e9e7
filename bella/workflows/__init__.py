"""
Scheduled workflows for Bella Planner.

Usage:
    from bella.workflows import run_weekly_kickoff
"""

from bella.workflows.weekly_kickoff import KickoffResult, run_weekly_kickoff

__all__ = ["KickoffResult", "run_weekly_kickoff"]
