"""
Validated upstream API tokens.

The ScoreSaber API returns loosely typed JSON. Every payload is converted into
one of these dataclasses at the ingestion boundary so the services never work
on raw dictionaries. Keys use the upstream camelCase names.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ssr_stats.constants import ScoreConstants
from ssr_stats.utils.exceptions import TokenValidationError
from ssr_stats.utils.time_utils import parse_timestamp


def _require(payload: Mapping[str, Any], key: str, expected_type, token_type: str):
    if not isinstance(payload, Mapping):
        raise TokenValidationError(token_type, "payload is not an object")
    if key not in payload or payload[key] is None:
        raise TokenValidationError(token_type, f"missing '{key}'")
    value = payload[key]
    # bool is an int subclass, reject it where a number is expected
    if isinstance(value, bool) and expected_type is not bool:
        raise TokenValidationError(token_type, f"'{key}' must be {_type_name(expected_type)}")
    if not isinstance(value, expected_type):
        raise TokenValidationError(token_type, f"'{key}' must be {_type_name(expected_type)}")
    return value


def _optional(payload: Mapping[str, Any], key: str, expected_type, token_type: str, default=None):
    if isinstance(payload, Mapping) and payload.get(key) is None:
        return default
    return _require(payload, key, expected_type, token_type)


def _type_name(expected_type) -> str:
    if isinstance(expected_type, tuple):
        return " or ".join(t.__name__ for t in expected_type)
    return expected_type.__name__


def _timestamp(payload: Mapping[str, Any], key: str, token_type: str) -> datetime:
    raw = _require(payload, key, str, token_type)
    try:
        return parse_timestamp(raw)
    except ValueError:
        raise TokenValidationError(token_type, f"'{key}' is not an ISO-8601 timestamp")


def parse_modifiers(raw: Optional[str]) -> Tuple[str, ...]:
    """
    Parse an upstream modifier string such as "NF,GN".

    Args:
        raw: Comma-separated modifier codes, empty or None for no modifiers

    Returns:
        Tuple of upper-case modifier codes

    Raises:
        TokenValidationError: If a code is not a known modifier
    """
    if not raw:
        return ()

    modifiers = []
    for code in raw.split(','):
        code = code.strip().upper()
        if not code:
            continue
        if code not in ScoreConstants.KNOWN_MODIFIERS:
            raise TokenValidationError("score", f"unknown modifier '{code}'")
        modifiers.append(code)
    return tuple(modifiers)


@dataclass(frozen=True)
class LeaderboardToken:
    """Leaderboard as reported by the upstream API."""
    id: int
    song_name: str
    difficulty: str
    max_score: int
    stars: float
    ranked: bool
    qualified: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LeaderboardToken":
        token_type = "leaderboard"
        difficulty = _optional(payload, 'difficulty', Mapping, token_type, {})
        max_score = _optional(payload, 'maxScore', int, token_type, 0)
        stars = float(_optional(payload, 'stars', (int, float), token_type, 0.0))
        if max_score < 0:
            raise TokenValidationError(token_type, "'maxScore' must not be negative")
        if stars < 0:
            raise TokenValidationError(token_type, "'stars' must not be negative")

        return cls(
            id=_require(payload, 'id', int, token_type),
            song_name=_optional(payload, 'songName', str, token_type, ""),
            difficulty=str(difficulty.get('difficultyRaw', "")),
            max_score=max_score,
            stars=stars,
            ranked=_optional(payload, 'ranked', bool, token_type, False),
            qualified=_optional(payload, 'qualified', bool, token_type, False),
        )


@dataclass(frozen=True)
class ScoreToken:
    """A single score as reported by the upstream API."""
    id: str
    player_id: str
    base_score: int
    modified_score: Optional[int]
    pp: float
    rank: int
    modifiers: Tuple[str, ...]
    missed_notes: int
    bad_cuts: int
    full_combo: bool
    max_combo: int
    time_set: datetime

    @property
    def misses(self) -> int:
        return self.missed_notes + self.bad_cuts

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], player_id: Optional[str] = None) -> "ScoreToken":
        """
        Build a score token from an upstream payload.

        Args:
            payload: The score JSON
            player_id: Player that set the score; read from leaderboardPlayerInfo when omitted

        Raises:
            TokenValidationError: If required fields are missing or have the wrong type
        """
        token_type = "score"
        if player_id is None:
            player_info = _require(payload, 'leaderboardPlayerInfo', Mapping, token_type)
            player_id = _require(player_info, 'id', str, token_type)

        base_score = _require(payload, 'baseScore', int, token_type)
        if base_score < 0:
            raise TokenValidationError(token_type, "'baseScore' must not be negative")

        return cls(
            id=str(_require(payload, 'id', (int, str), token_type)),
            player_id=player_id,
            base_score=base_score,
            modified_score=_optional(payload, 'modifiedScore', int, token_type),
            pp=float(_optional(payload, 'pp', (int, float), token_type, 0.0)),
            rank=_optional(payload, 'rank', int, token_type, 0),
            modifiers=parse_modifiers(_optional(payload, 'modifiers', str, token_type, "")),
            missed_notes=_optional(payload, 'missedNotes', int, token_type, 0),
            bad_cuts=_optional(payload, 'badCuts', int, token_type, 0),
            full_combo=_optional(payload, 'fullCombo', bool, token_type, False),
            max_combo=_optional(payload, 'maxCombo', int, token_type, 0),
            time_set=_timestamp(payload, 'timeSet', token_type),
        )


@dataclass(frozen=True)
class PlayerToken:
    """A player profile as reported by the upstream API."""
    id: str
    name: str
    country: Optional[str]
    rank: int
    country_rank: int
    pp: float
    inactive: bool
    first_seen: Optional[datetime]
    histories: str
    average_ranked_accuracy: float
    total_score: int
    total_ranked_score: int
    total_play_count: int
    ranked_play_count: int

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PlayerToken":
        token_type = "player"
        score_stats: Dict[str, Any] = _optional(payload, 'scoreStats', Mapping, token_type, {})
        first_seen = (
            _timestamp(payload, 'firstSeen', token_type)
            if payload.get('firstSeen') is not None else None
        )

        return cls(
            id=_require(payload, 'id', str, token_type),
            name=_optional(payload, 'name', str, token_type, ""),
            country=_optional(payload, 'country', str, token_type),
            rank=_optional(payload, 'rank', int, token_type, 0),
            country_rank=_optional(payload, 'countryRank', int, token_type, 0),
            pp=float(_optional(payload, 'pp', (int, float), token_type, 0.0)),
            inactive=_optional(payload, 'inactive', bool, token_type, False),
            first_seen=first_seen,
            histories=_optional(payload, 'histories', str, token_type, ""),
            average_ranked_accuracy=float(
                _optional(score_stats, 'averageRankedAccuracy', (int, float), token_type, 0.0)
            ),
            total_score=_optional(score_stats, 'totalScore', int, token_type, 0),
            total_ranked_score=_optional(score_stats, 'totalRankedScore', int, token_type, 0),
            total_play_count=_optional(score_stats, 'totalPlayCount', int, token_type, 0),
            ranked_play_count=_optional(score_stats, 'rankedPlayCount', int, token_type, 0),
        )

    def parse_rank_history(self) -> List[int]:
        """
        Daily ranks oldest first, the current rank appended as today's value.

        Values that are not a rank become 0 so every position keeps its slot.
        """
        ranks = []
        if self.histories.strip():
            for value in self.histories.split(','):
                value = value.strip()
                ranks.append(int(value) if value.isdigit() else 0)
        ranks.append(self.rank)
        return ranks
