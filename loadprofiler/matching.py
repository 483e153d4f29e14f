"""
Route incoming files to known meters by name.

Names are normalised (extension, vendor suffix and trailing date stamps
removed, punctuation dropped, lowercased) and then compared with an
edit-style similarity (difflib) and a containment / word-overlap score.
"""

from __future__ import annotations
import difflib
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import canon
from .config import MatchConfig
from .exceptions import MatchError, require
from .types import MatchResult, MatchType, MeterIdentity

logger = logging.getLogger(__name__)

_EXTENSION = re.compile(canon.FILE_EXTENSIONS, re.IGNORECASE)
_SUFFIX = re.compile(canon.NAME_SUFFIXES, re.IGNORECASE)
_TRAILING_STAMPS = (
    re.compile(r"[_\-\s]?\d{4}[-_]?\d{2}[-_]?\d{2}$"),  # 20240131, 2024-01-31
    re.compile(r"[_\-\s]?\d{2}[-_]\d{2}[-_]\d{4}$"),  # 31-01-2024
    re.compile(r"[_\-\s]?\d{2}[-_:]?\d{2}[-_:]?\d{2}$"),  # 235959, 23:59:59
)
_SEPARATORS = re.compile(r"[_\-]+")
_PUNCT = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    if not name:
        return ""
    s = _EXTENSION.sub("", name.strip())
    s = _SUFFIX.sub("", s)
    for pattern in _TRAILING_STAMPS:
        s = pattern.sub("", s)
    s = _SEPARATORS.sub(" ", s)
    s = _PUNCT.sub("", s)
    return _SPACES.sub(" ", s).strip().lower()


def make_identity(
    meter_id: str,
    display_name: str,
    aliases: Iterable[str] = (),
    site: Optional[str] = None,
) -> MeterIdentity:
    require(bool(meter_id), "Meter identity needs an id.", MatchError)
    return MeterIdentity(
        id=meter_id,
        display_name=display_name,
        normalized_name=normalize_name(display_name),
        aliases=tuple(a for a in aliases if a),
        site=site,
    )


def similarity(a: str, b: str) -> int:
    """Edit similarity of two normalised names, 0..100."""
    if not a or not b:
        return 0
    if a == b:
        return 100
    return round(difflib.SequenceMatcher(None, a, b).ratio() * 100)


def containment_score(candidate: str, meter_name: str) -> float:
    """
    Score for one name containing the other, else for shared words.

    Containment scores 65..90 depending on how much of the longer name
    the shorter one covers; word overlap (words of 3+ letters) tops out at 70.
    """
    f, m = candidate.lower(), meter_name.lower()
    if not f or not m:
        return 0.0
    if m in f:
        return min(90.0, 70.0 + len(m) / len(f) * 30.0)
    if f in m:
        return min(85.0, 65.0 + len(f) / len(m) * 30.0)

    f_words = {w for w in f.split() if len(w) > 2}
    m_words = {w for w in m.split() if len(w) > 2}
    if not f_words or not m_words:
        return 0.0
    shared = len(f_words & m_words)
    if shared == 0:
        return 0.0
    return float(round(shared / max(len(f_words), len(m_words)) * 70))


def _names(identity: MeterIdentity) -> List[str]:
    return [n for n in (identity.display_name, *identity.aliases) if n]


def _score_name(
    target: str, name: str, cfg: MatchConfig
) -> Tuple[float, MatchType, bool]:
    """(confidence, match type, passed a threshold) for one identity name."""
    normalized = normalize_name(name)
    if target == normalized and target:
        return 100.0, "exact", True

    sim = float(similarity(target, normalized))
    contained = containment_score(target, normalized)
    best: Optional[Tuple[float, MatchType]] = None
    if sim >= cfg.normalized_threshold:
        best = (sim, "normalized")
    if contained >= cfg.partial_threshold and (best is None or contained > best[0]):
        best = (contained, "partial")
    if sim >= cfg.fuzzy_threshold and (best is None or sim > best[0]):
        best = (sim, "fuzzy")
    if best is None:
        return max(sim, contained), "fuzzy", False
    return best[0], best[1], True


def _score_identity(
    target: str, identity: MeterIdentity, cfg: MatchConfig
) -> Optional[MatchResult]:
    best: Optional[Tuple[float, MatchType, bool, str]] = None
    for name in _names(identity):
        conf, kind, qualified = _score_name(target, name, cfg)
        if best is None or (qualified, conf) > (best[2], best[0]):
            best = (conf, kind, qualified, name)
    if best is None:
        return None
    return MatchResult(
        meter_id=identity.id,
        meter_name=best[3],
        confidence=best[0],
        match_type=best[1],
    )


def rank_meters(
    name: str,
    identities: Sequence[MeterIdentity],
    config: Optional[MatchConfig] = None,
) -> List[MatchResult]:
    """
    Every identity scored against `name`, best first.

    No floor is applied; callers offering a manual override can present
    the whole list.
    """
    require(isinstance(name, str), "Match target must be a string.", MatchError)
    cfg = config or MatchConfig()
    target = normalize_name(name)
    if not target:
        return []
    scored = [_score_identity(target, ident, cfg) for ident in identities]
    # sorted() is stable: equal confidences keep registry order
    return sorted(
        (r for r in scored if r is not None), key=lambda r: r.confidence, reverse=True
    )


def match_meter(
    name: str,
    identities: Sequence[MeterIdentity],
    config: Optional[MatchConfig] = None,
) -> Optional[MatchResult]:
    """
    Best identity for `name`, or None when nothing clears the confidence floor.

    None leaves the create-or-skip decision to the caller.
    """
    cfg = config or MatchConfig()
    ranked = rank_meters(name, identities, cfg)
    if not ranked or ranked[0].confidence < cfg.confidence_floor:
        logger.debug("No meter match for %r", name)
        return None
    logger.debug(
        "Matched %r to %s (%s, %.0f)",
        name,
        ranked[0].meter_id,
        ranked[0].match_type,
        ranked[0].confidence,
    )
    return ranked[0]


def match_files_to_meters(
    names: Sequence[str],
    identities: Sequence[MeterIdentity],
    config: Optional[MatchConfig] = None,
) -> Dict[str, Optional[MatchResult]]:
    """
    Assign each file name to a distinct meter.

    Longer names are matched first since they carry more signal; a meter
    taken by one file is not offered to the next. Keys keep input order.
    """
    cfg = config or MatchConfig()
    assigned: Dict[str, Optional[MatchResult]] = {}
    used: set[str] = set()
    for n in sorted(names, key=len, reverse=True):
        available = [m for m in identities if m.id not in used]
        match = match_meter(n, available, cfg)
        assigned[n] = match
        if match is not None:
            used.add(match.meter_id)
    return {n: assigned[n] for n in names}
