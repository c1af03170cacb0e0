"""
Skill matching.

Everything here is a pure function of the profiles passed in: no database
access and no Flask context, so the same inputs always give the same ranking.
A profile is any object exposing ``id``, ``skills_to_teach``,
``skills_to_learn``, ``rating``, ``total_sessions`` and ``is_active``.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MATCH_LIMIT = 20
SESSION_WEIGHT = 0.1

NO_LEARN_SKILLS_MESSAGE = 'Add skills you want to learn to find matches'
INCOMPLETE_PROFILE_MESSAGE = 'Add both skills to teach and learn to find mutual matches'


def skills_equivalent(a: str, b: str) -> bool:
    """Case-insensitive substring containment in either direction.

    Not transitive: "C" matches both "C++" and "C#" while those two do not
    match each other.
    """
    a, b = a.lower(), b.lower()
    return a in b or b in a


def equivalent_skills(skills, against) -> List[str]:
    """Entries of ``skills`` equivalent to at least one entry of ``against``, in order."""
    against = list(against or [])
    return [skill for skill in (skills or []) if any(skills_equivalent(skill, other) for other in against)]


@dataclass
class Match:
    user: Any
    match_type: str
    common_skills: List[str]
    match_score: float
    wants_to_learn_from_me: Optional[List[str]] = None

    def to_dict(self):
        data = {
            'user': self.user.to_dict(),
            'matchType': self.match_type,
            'commonSkills': self.common_skills,
            'matchScore': self.match_score,
        }
        if self.wants_to_learn_from_me is not None:
            data['wantsToLearnFromMe'] = self.wants_to_learn_from_me
        return data


@dataclass
class MutualMatch:
    user: Any
    can_teach_me: List[str]
    wants_to_learn_from_me: List[str]
    match_score: float
    match_type: str = 'mutual'

    def to_dict(self):
        return {
            'user': self.user.to_dict(),
            'matchType': self.match_type,
            'canTeachMe': self.can_teach_me,
            'wantsToLearnFromMe': self.wants_to_learn_from_me,
            'matchScore': self.match_score,
        }


@dataclass
class MatchResult:
    matches: list = field(default_factory=list)
    total_matches: int = 0
    message: Optional[str] = None


def _eligible(current_user, candidates):
    for candidate in candidates:
        if candidate.id == current_user.id or not candidate.is_active:
            continue
        yield candidate


def find_matches(current_user, candidates, limit=DEFAULT_MATCH_LIMIT) -> MatchResult:
    """
    Rank candidates who can teach the current user, want to learn from them, or both.

    Teacher matches score shared skills plus the candidate's rating and a
    session bonus; learner-only matches score shared skills alone. A candidate
    found in both passes becomes a single mutual match carrying both sums.
    """
    if not current_user.skills_to_learn:
        return MatchResult(message=NO_LEARN_SKILLS_MESSAGE)

    candidates = list(_eligible(current_user, candidates))
    matches = []
    by_user = {}

    for candidate in candidates:
        common = equivalent_skills(candidate.skills_to_teach, current_user.skills_to_learn)
        if not common:
            continue
        score = len(common) + (candidate.rating or 0) + (candidate.total_sessions or 0) * SESSION_WEIGHT
        match = Match(user=candidate, match_type='teacher', common_skills=common, match_score=score)
        matches.append(match)
        by_user[candidate.id] = match

    for candidate in candidates:
        common = equivalent_skills(candidate.skills_to_learn, current_user.skills_to_teach)
        if not common:
            continue
        existing = by_user.get(candidate.id)
        if existing is not None:
            existing.match_type = 'mutual'
            existing.wants_to_learn_from_me = common
            existing.match_score += len(common)
        else:
            matches.append(Match(user=candidate, match_type='learner', common_skills=common,
                                 match_score=len(common)))

    matches.sort(key=lambda m: m.match_score, reverse=True)
    logger.debug("Computed %d matches for user %s", len(matches), current_user.id)
    return MatchResult(matches=matches[:limit], total_matches=len(matches))


def find_mutual_matches(current_user, candidates) -> MatchResult:
    """Candidates who can teach the current user and also want to learn from them."""
    if not current_user.skills_to_learn or not current_user.skills_to_teach:
        return MatchResult(message=INCOMPLETE_PROFILE_MESSAGE)

    matches = []
    for candidate in _eligible(current_user, candidates):
        can_teach_me = equivalent_skills(candidate.skills_to_teach, current_user.skills_to_learn)
        wants_to_learn = equivalent_skills(candidate.skills_to_learn, current_user.skills_to_teach)
        if not can_teach_me or not wants_to_learn:
            continue
        score = len(can_teach_me) + len(wants_to_learn) + (candidate.rating or 0)
        matches.append(MutualMatch(user=candidate, can_teach_me=can_teach_me,
                                   wants_to_learn_from_me=wants_to_learn, match_score=score))

    matches.sort(key=lambda m: m.match_score, reverse=True)
    logger.debug("Computed %d mutual matches for user %s", len(matches), current_user.id)
    return MatchResult(matches=matches, total_matches=len(matches))
