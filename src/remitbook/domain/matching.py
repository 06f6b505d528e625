"""Client matching for ingested records.

Names from bank messages rarely match the client directory exactly, so a
fixed sequence of increasingly loose rules is tried. The first rule that
narrows the candidates down to a single client wins.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from remitbook.domain.entities import (
    BlacklistItem,
    BlacklistKind,
    Client,
    ParsedSms,
    Record,
)

logger = logging.getLogger(__name__)

TASHKEEL = re.compile("[ً-ْ]")
TATWEEL = "ـ"

# Relative distance for an earlier record to count as a similar amount
SIMILAR_AMOUNT_TOLERANCE = Decimal("0.1")


def normalize_arabic(text: str) -> str:
    """Fold spelling variants of Arabic names onto one form."""
    if not text:
        return ""
    text = TASHKEEL.sub("", text).replace(TATWEEL, "")
    text = re.sub("[أإآ]", "ا", text)
    text = text.replace("ة", "ه").replace("ى", "ي").replace("ظ", "ض")
    return " ".join(text.split()).lower()


def normalize_phone(phone: str) -> str:
    """Keep the last 9 digits of a phone number, dropping country prefixes.

    Returns an empty string when fewer than 9 digits are present.
    """
    digits = "".join(ch for ch in str(phone or "") if ch.isdigit())
    if len(digits) < 9:
        return ""
    return digits[-9:]


def blacklist_hit(item: BlacklistItem, person: str, phones: Iterable[str] = ()) -> bool:
    """Check whether a blacklist item applies to a name and its phones.

    A phone item matches on the normalized number. A name item matches when
    every one of its words appears among the name's words.
    """
    if item.kind == BlacklistKind.PHONE:
        target = normalize_phone(item.value)
        if not target:
            return False
        numbers = {normalize_phone(p) for p in phones}
        numbers.add(normalize_phone(person))
        return target in numbers
    item_words = normalize_arabic(item.value).split()
    name_words = set(normalize_arabic(person).split())
    return bool(item_words) and all(word in name_words for word in item_words)


def _by_phone(person: str, clients: Sequence[Client]) -> list[Client]:
    number = normalize_phone(person)
    if not number:
        return []
    return [c for c in clients if any(normalize_phone(p) == number for p in c.phones)]


def _by_first_and_second(person: str, clients: Sequence[Client]) -> list[Client]:
    words = normalize_arabic(person).split()
    if len(words) < 2:
        return []
    return [c for c in clients if normalize_arabic(c.name).split()[:2] == words[:2]]


def _by_full_name(person: str, clients: Sequence[Client]) -> list[Client]:
    name = normalize_arabic(person)
    if not name:
        return []
    return [c for c in clients if normalize_arabic(c.name) == name]


def _by_first_and_last(person: str, clients: Sequence[Client]) -> list[Client]:
    words = normalize_arabic(person).split()
    if len(words) < 2:
        return []
    matches = []
    for c in clients:
        client_words = normalize_arabic(c.name).split()
        if len(client_words) >= 2 and (client_words[0], client_words[-1]) == (words[0], words[-1]):
            matches.append(c)
    return matches


def _by_part_of_full_name(person: str, clients: Sequence[Client]) -> list[Client]:
    words = normalize_arabic(person).split()
    if not words:
        return []
    return [c for c in clients if all(w in normalize_arabic(c.name).split() for w in words)]


MatchRule = Callable[[str, Sequence[Client]], list[Client]]

MATCH_RULES: dict[str, MatchRule] = {
    "phone_number": _by_phone,
    "first_and_second": _by_first_and_second,
    "full_name": _by_full_name,
    "first_and_last": _by_first_and_last,
    "part_of_full_name": _by_part_of_full_name,
}

DEFAULT_RULE_ORDER: tuple[str, ...] = (
    "phone_number",
    "first_and_second",
    "full_name",
    "first_and_last",
    "part_of_full_name",
)


class MatchStatus(str, Enum):
    MATCHED = "MATCHED"
    AMBIGUOUS = "AMBIGUOUS"
    NO_MATCH = "NO_MATCH"
    BLACKLISTED = "BLACKLISTED"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one person against the client directory."""

    status: MatchStatus
    client_id: Optional[int] = None
    rule: Optional[str] = None
    candidate_ids: tuple[int, ...] = field(default_factory=tuple)
    blacklist_item_id: Optional[int] = None


def break_tie(
    candidates: list[Client],
    history: Sequence[Record],
    account_id: Optional[str] = None,
    amount_usd: Optional[Decimal] = None,
) -> list[Client]:
    """Narrow candidates using earlier records.

    Clients with earlier records on the same account are preferred, then
    clients with an earlier record within 10% of the USD amount; among
    those, the one with the most recent record wins.
    """
    if len(candidates) <= 1:
        return candidates
    ids = {c.id for c in candidates}
    relevant = [r for r in history if r.client_id in ids]

    if account_id is not None:
        used_account = {r.client_id for r in relevant if r.account_id == account_id}
        narrowed = [c for c in candidates if c.id in used_account]
        if len(narrowed) == 1:
            return narrowed
        if narrowed:
            candidates = narrowed

    if amount_usd is not None and amount_usd > 0:
        tolerance = amount_usd * SIMILAR_AMOUNT_TOLERANCE
        similar = {
            r.client_id
            for r in relevant
            if r.client_id in {c.id for c in candidates} and abs(r.amount_usd - amount_usd) < tolerance
        }
        narrowed = [c for c in candidates if c.id in similar]
        if len(narrowed) == 1:
            return narrowed
        if narrowed:
            candidates = narrowed

    latest = {}
    for r in relevant:
        if r.client_id in {c.id for c in candidates}:
            if r.client_id not in latest or r.date > latest[r.client_id]:
                latest[r.client_id] = r.date
    if latest:
        newest = max(latest.values())
        winners = [c for c in candidates if latest.get(c.id) == newest]
        if len(winners) == 1:
            return winners
    return candidates


class ClientMatcher:
    """Matches a person name or phone from a record to a known client."""

    def __init__(self, rule_order: Sequence[str] = DEFAULT_RULE_ORDER):
        unknown = [name for name in rule_order if name not in MATCH_RULES]
        if unknown:
            raise ValueError(f"Unknown match rule(s): {', '.join(unknown)}")
        self.rule_order = tuple(rule_order)

    def match(
        self,
        person: str,
        clients: Sequence[Client],
        blacklist: Sequence[BlacklistItem] = (),
        account_id: Optional[str] = None,
        history: Sequence[Record] = (),
        amount_usd: Optional[Decimal] = None,
    ) -> MatchResult:
        """Match a person against clients.

        Args:
            person: Sender or recipient name (or phone) as received
            clients: Known clients
            blacklist: Blacklist items, checked before any rule
            account_id: Account the money moved through, for the history tie-break
            history: Earlier records, for the history tie-break
            amount_usd: USD amount of the record, for the history tie-break

        Returns:
            MatchResult
        """
        for item in blacklist:
            if blacklist_hit(item, person):
                logger.warning("'%s' hits blacklist item %s", person, item.id)
                return MatchResult(status=MatchStatus.BLACKLISTED, blacklist_item_id=item.id)

        ambiguous: tuple[int, ...] = ()
        for rule_name in self.rule_order:
            candidates = MATCH_RULES[rule_name](person, clients)
            if not candidates:
                continue
            candidates = break_tie(candidates, history, account_id, amount_usd)
            if len(candidates) == 1:
                client = candidates[0]
                if client.blacklisted:
                    return MatchResult(
                        status=MatchStatus.BLACKLISTED, client_id=client.id, rule=rule_name
                    )
                return MatchResult(status=MatchStatus.MATCHED, client_id=client.id, rule=rule_name)
            if not ambiguous:
                ambiguous = tuple(c.id for c in candidates)

        if ambiguous:
            return MatchResult(status=MatchStatus.AMBIGUOUS, candidate_ids=ambiguous)
        return MatchResult(status=MatchStatus.NO_MATCH)

    def match_client(
        self,
        parsed: ParsedSms,
        clients: Sequence[Client],
        blacklist: Sequence[BlacklistItem] = (),
        account_id: Optional[str] = None,
        history: Sequence[Record] = (),
        amount_usd: Optional[Decimal] = None,
    ) -> MatchResult:
        """Match the person of a parsed SMS."""
        return self.match(parsed.person, clients, blacklist, account_id, history, amount_usd)
