from dataclasses import dataclass


@dataclass(frozen=True)
class Rules:
    veto_min_minutes: int = 12
    veto_penalty_minutes: int = 5
    steal_penalty_minutes: int = 5
    steal_failures_to_lock: int = 2

    @classmethod
    def from_config(cls, config) -> 'Rules':
        return cls(
            veto_min_minutes=int(config.get('VETO_MIN_MINUTES', 12)),
            veto_penalty_minutes=int(config.get('VETO_PENALTY_MINUTES', 5)),
            steal_penalty_minutes=int(config.get('STEAL_PENALTY_MINUTES', 5)),
            steal_failures_to_lock=int(config.get('STEAL_FAILURES_TO_LOCK', 2)),
        )
