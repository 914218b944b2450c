"""Bar ownership state machine.

States per bar::

    unclaimed --claim--> claimed(A) --lock--> locked(A)
                         claimed(A) --steal ok--> claimed(B)
                         claimed(A) --N failed steals--> locked(A)

A bar only exists once something references its place id. Every
operation validates before it writes, so a rejected call leaves the
registry untouched.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Optional

from .errors import (
    AlreadyLocked,
    AlreadyOwnedByOther,
    BarLocked,
    BarNotClaimed,
    BarNotOwnedByCaller,
    CannotStealOwnBar,
    InvalidBarSpec,
    InvalidTeamCode,
    MissingProof,
)
from .state import Bar

logger = logging.getLogger(__name__)


@dataclass
class StealOutcome:
    bar: Bar
    success: bool
    # True when this failure tipped the bar into a defensive lock.
    locked_now: bool = False


class BarRegistry:
    def __init__(self, bars: Optional[Dict[str, Bar]] = None, failures_to_lock: int = 2):
        self._bars: Dict[str, Bar] = dict(bars or {})
        self.failures_to_lock = failures_to_lock

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars.values())

    def __len__(self) -> int:
        return len(self._bars)

    def get(self, place_id: str) -> Optional[Bar]:
        return self._bars.get(place_id)

    def as_dict(self) -> Dict[str, Bar]:
        return dict(self._bars)

    def claim(self, team_code: str, place_id: str, name: str = '', lat: float = 0.0,
              lng: float = 0.0, has_proof: bool = False, proof: Optional[dict] = None) -> Bar:
        if not has_proof:
            raise MissingProof()
        bar = self._bars.get(place_id)
        if bar is not None:
            if bar.locked:
                raise BarLocked()
            if bar.owner is not None and bar.owner != team_code:
                raise AlreadyOwnedByOther()
            if bar.owner == team_code:
                # Re-claim by the owner changes nothing.
                return bar

        if bar is None:
            bar = Bar(place_id=place_id, name=name or '', lat=float(lat or 0), lng=float(lng or 0))
            self._bars[place_id] = bar
        elif name and not bar.name:
            bar.name = name
        bar.owner = team_code
        bar.failed_steal_attempts = 0
        if proof:
            bar.proof = dict(proof)
        logger.info('bar=%s claimed by team=%s', place_id, team_code)
        return bar

    def lock(self, team_code: str, place_id: str) -> Bar:
        bar = self._bars.get(place_id)
        if bar is None or bar.owner != team_code:
            raise BarNotOwnedByCaller()
        if bar.locked:
            raise AlreadyLocked()
        bar.locked = True
        logger.info('bar=%s locked by team=%s', place_id, team_code)
        return bar

    def check_stealable(self, team_code: str, place_id: str) -> Bar:
        bar = self._bars.get(place_id)
        if bar is not None and bar.locked:
            raise BarLocked()
        if bar is None or bar.owner is None:
            raise BarNotClaimed()
        if bar.owner == team_code:
            raise CannotStealOwnBar()
        return bar

    def steal_attempt(self, team_code: str, place_id: str, success: bool) -> StealOutcome:
        bar = self.check_stealable(team_code, place_id)
        if success:
            previous = bar.owner
            bar.owner = team_code
            bar.failed_steal_attempts = 0
            logger.info('bar=%s stolen from team=%s by team=%s', place_id, previous, team_code)
            return StealOutcome(bar=bar, success=True)

        bar.failed_steal_attempts += 1
        locked_now = bar.failed_steal_attempts >= self.failures_to_lock
        if locked_now:
            bar.locked = True
        logger.info(
            'bar=%s steal by team=%s failed (attempts=%d locked=%s)',
            place_id, team_code, bar.failed_steal_attempts, locked_now,
        )
        return StealOutcome(bar=bar, success=False, locked_now=locked_now)

    @staticmethod
    def build(specs: Iterable[Mapping], team_codes: Iterable[str]) -> Dict[str, Bar]:
        """Validate bar specs from an admin overwrite and return new bars."""
        known = set(team_codes)
        bars: Dict[str, Bar] = {}
        for spec in specs:
            if not isinstance(spec, Mapping):
                raise InvalidBarSpec('Each bar must be an object.')
            place_id = str(spec.get('place_id') or '').strip()
            if not place_id:
                raise InvalidBarSpec('Bar place_id is required.')
            owner = spec.get('owner') or None
            if owner is not None and owner not in known:
                raise InvalidTeamCode(f'Unknown team code {owner!r} for bar {place_id}.')
            locked = bool(spec.get('locked'))
            if locked and owner is None:
                raise InvalidBarSpec(f'Bar {place_id} cannot be locked without an owner.')
            try:
                bar = Bar(
                    place_id=place_id,
                    name=str(spec.get('name') or ''),
                    lat=float(spec.get('lat') or 0),
                    lng=float(spec.get('lng') or 0),
                    owner=owner,
                    locked=locked,
                    failed_steal_attempts=int(spec.get('failed_steal_attempts') or 0),
                )
            except (TypeError, ValueError) as exc:
                raise InvalidBarSpec(f'Bar {place_id}: {exc}') from exc
            bars[place_id] = bar
        return bars

    def replace(self, bars: Dict[str, Bar]) -> None:
        self._bars = dict(bars)

    def clear(self) -> None:
        self._bars.clear()
