"""
Rule Matcher - Matches dynamic (time-of-week) pricing rules.

Used by the pricing engine to pick the price override that applies at a
given moment on top of an item's default price.
"""
from datetime import datetime
from dataclasses import dataclass

from .clock import day_of_week, minute_of_day, to_minutes
from .models import DynamicRule


DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass
class MatchedRule:
    """A rule that matched with context."""
    rule: DynamicRule
    position: int
    match_reason: str

    @property
    def priority(self) -> int:
        return self.rule.priority


def is_time_in_range(current: int, start_time: str, end_time: str) -> bool:
    """
    True when minute-of-day `current` falls in [start, end).

    A window whose end is before its start wraps past midnight.
    """
    start = to_minutes(start_time)
    end = to_minutes(end_time)

    if end < start:
        return current >= start or current < end

    return start <= current < end


class DynamicRuleMatcher:
    """
    Matches dynamic pricing rules against a point in time.

    Rules are matched on day-of-week (empty day set = every day) and on a
    minute-of-day window.
    """

    def find_matching_rules(self, rules: list[DynamicRule], as_of: datetime) -> list[MatchedRule]:
        """
        Find all rules that match the given moment.

        Returns rules sorted by priority (higher = wins); equal priorities
        keep declaration order.
        """
        day = day_of_week(as_of)
        current = minute_of_day(as_of)

        matched = []
        for position, rule in enumerate(rules):
            reasons = []

            # Day match
            if rule.days:
                if day not in rule.days:
                    continue
                reasons.append(f"day={DAY_NAMES[day]}")
            else:
                reasons.append("every day")

            # Time window match
            if not is_time_in_range(current, rule.start_time, rule.end_time):
                continue
            reasons.append(f"{rule.start_time}-{rule.end_time}")

            matched.append(MatchedRule(
                rule=rule,
                position=position,
                match_reason=", ".join(reasons),
            ))

        matched.sort(key=lambda m: (-m.priority, m.position))
        return matched
