"""Bank SMS parsing.

Rules are an ordered tuple and the first rule that matches and yields a
valid result wins, so reordering the rules changes parsing outcomes.
Operator-defined marker rules are always tried before the built-in ones.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from remitbook.domain.entities import ParsedSms, SmsParsingRule
from remitbook.domain.errors import ValidationError
from remitbook.utils.amount_parser import normalize_digits, parse_amount

logger = logging.getLogger(__name__)

FLOW_TYPES = ("credit", "debit")
CURRENCY_CODE = re.compile(r"^[A-Z]{3,4}$")
AMOUNT = r"(\d[\d,]*(?:\.\d+)?)"

# Checked in order, first hit wins
CURRENCY_WORDS: tuple[tuple[str, str], ...] = (
    ("ريال يمني", "YER"),
    ("ريال سعودي", "SAR"),
    ("ر.س", "SAR"),
    ("دولار", "USD"),
)


@dataclass(frozen=True)
class PatternRule:
    """One SMS format: a regex and how to read its groups."""

    name: str
    pattern: re.Pattern
    flow_type: str
    amount_group: int
    person_group: int
    currency_group: Optional[int] = None
    default_currency: Optional[str] = None
    currency_aliases: tuple[tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ParseOutcome:
    """Either a parsed SMS or the reason nothing could be parsed."""

    parsed: Optional[ParsedSms] = None
    failure_reason: Optional[str] = None
    rule_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.parsed is not None


DEFAULT_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        # أودع/عبدالله عبدالغفور لحسابك2500 YERرصيدك146688٫9YER
        name="deposit_awda",
        pattern=re.compile(r"أودع/(.+?)\s*لحسابك\s*" + AMOUNT + r"\s*([A-Z]{3,4})"),
        flow_type="credit",
        amount_group=2,
        person_group=1,
        currency_group=3,
    ),
    PatternRule(
        # تم إيداع 25000 ريال يمني الى حسابك من طرف علي عبدالله صالح.
        name="deposit_tam_idaa",
        pattern=re.compile(r"تم إيداع\s*" + AMOUNT + r"\s*(.+?)\s+الى حسابك من طرف\s+(.+?)(?:\.|$)"),
        flow_type="credit",
        amount_group=1,
        person_group=3,
        currency_group=2,
        default_currency="YER",
        currency_aliases=CURRENCY_WORDS,
    ),
    PatternRule(
        # تم تحويل مبلغ 500.00 ر.س. إلى فهد الغامدي
        name="transfer_tam_tahwil",
        pattern=re.compile(r"تم تحويل مبلغ\s*" + AMOUNT + r"\s*(.+?)\s+إلى\s+(.+?)(?:\.|$)"),
        flow_type="debit",
        amount_group=1,
        person_group=3,
        currency_group=2,
        default_currency="SAR",
        currency_aliases=CURRENCY_WORDS,
    ),
    PatternRule(
        # استلمت 100 USD من شركة الأمل للصرافة.
        name="received_istalamt",
        pattern=re.compile(r"استلمت\s*" + AMOUNT + r"\s*([A-Z]{3,4})?\s*من\s+(.+?)(?:\.|$)"),
        flow_type="credit",
        amount_group=1,
        person_group=3,
        currency_group=2,
        default_currency="YER",
    ),
)


def normalize_text(text: str) -> str:
    """Normalize digits and separators to ASCII and collapse whitespace."""
    return " ".join(normalize_digits(text or "").split())


def compile_marker_rule(rule: SmsParsingRule) -> PatternRule:
    """Turn an operator marker rule into a PatternRule.

    The amount sits between the two amount markers, the person between the
    two person markers. An empty closing person marker means end of text.
    """
    person_end = re.escape(rule.person_ends_before) if rule.person_ends_before else "$"
    pattern = (
        re.escape(rule.amount_starts_after)
        + r"\s*([\d,.]+)\s*"
        + re.escape(rule.amount_ends_before)
        + ".*?"
        + re.escape(rule.person_starts_after)
        + r"\s*(.+?)\s*"
        + person_end
    )
    return PatternRule(
        name=f"custom:{rule.name}",
        pattern=re.compile(pattern, re.IGNORECASE),
        flow_type=rule.flow_type,
        amount_group=1,
        person_group=2,
        default_currency=rule.currency,
    )


def _resolve_currency(rule: PatternRule, raw: Optional[str], fallback: Optional[str]) -> Optional[str]:
    if raw:
        raw = raw.strip()
        if CURRENCY_CODE.match(raw):
            return raw
        for word, code in rule.currency_aliases:
            if word in raw:
                return code
    return rule.default_currency or fallback


def validate_parsed_sms(data: Mapping[str, Any], default_currency: Optional[str] = None) -> ParsedSms:
    """Validate untrusted parsed-SMS output, e.g. from an extraction model.

    Args:
        data: Mapping with type, amount, currency and person
        default_currency: Used when the mapping carries no currency

    Returns:
        ParsedSms

    Raises:
        ValidationError: If any field is missing or invalid
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Parsed SMS must be a mapping")

    flow_type = str(data.get("type") or "").strip().lower()
    if flow_type not in FLOW_TYPES:
        raise ValidationError(f"Invalid SMS type '{data.get('type')}'. Must be credit or debit")

    raw_amount = data.get("amount")
    if isinstance(raw_amount, bool) or raw_amount is None:
        raise ValidationError(f"Invalid SMS amount '{raw_amount}'")
    try:
        amount = parse_amount(str(raw_amount))
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if amount <= 0:
        raise ValidationError(f"SMS amount must be greater than zero, got {amount}")

    person = " ".join(str(data.get("person") or "").split())
    if not person:
        raise ValidationError("SMS person must not be empty")

    currency = str(data.get("currency") or default_currency or "").strip().upper()
    if not CURRENCY_CODE.match(currency):
        raise ValidationError(f"Invalid currency code '{currency}'")

    return ParsedSms(type=flow_type, amount=amount, currency=currency, person=person)


def _apply(rule: PatternRule, match: re.Match, fallback_currency: Optional[str]) -> ParsedSms:
    currency = None
    if rule.currency_group is not None:
        currency = match.group(rule.currency_group)
    return validate_parsed_sms(
        {
            "type": rule.flow_type,
            "amount": match.group(rule.amount_group),
            "person": match.group(rule.person_group),
            "currency": _resolve_currency(rule, currency, fallback_currency),
        }
    )


class SmsParser:
    """Parses bank SMS text with an ordered list of rules."""

    def __init__(
        self,
        rules: Sequence[PatternRule] = DEFAULT_RULES,
        custom_rules: Sequence[SmsParsingRule] = (),
    ):
        """Initialize the parser.

        Args:
            rules: Built-in rules, in evaluation order
            custom_rules: Operator marker rules, tried first by (priority, id)
        """
        ordered = sorted(custom_rules, key=lambda r: (r.priority, r.id))
        self.rules: tuple[PatternRule, ...] = tuple(compile_marker_rule(r) for r in ordered) + tuple(rules)

    def parse_sms(self, text: str, default_currency: Optional[str] = None) -> ParseOutcome:
        """Parse an SMS. A non-match is reported in the outcome, never raised.

        Args:
            text: Raw SMS text
            default_currency: Currency for rules that neither capture nor define one
        """
        normalized = normalize_text(text)
        if not normalized:
            return ParseOutcome(failure_reason="Empty message")

        rejected = []
        for rule in self.rules:
            match = rule.pattern.search(normalized)
            if match is None:
                continue
            try:
                parsed = _apply(rule, match, default_currency)
            except ValidationError as e:
                logger.debug("Rule %s matched but was rejected: %s", rule.name, e)
                rejected.append(f"{rule.name}: {e}")
                continue
            logger.debug("Parsed SMS with rule %s", rule.name)
            return ParseOutcome(parsed=parsed, rule_name=rule.name)

        if rejected:
            return ParseOutcome(failure_reason="Matched rules gave invalid data (" + "; ".join(rejected) + ")")
        return ParseOutcome(failure_reason="No parsing rule matched")


def parse_sms(
    text: str,
    custom_rules: Sequence[SmsParsingRule] = (),
    default_currency: Optional[str] = None,
) -> ParseOutcome:
    """Parse an SMS with the built-in rules plus any operator rules."""
    return SmsParser(custom_rules=custom_rules).parse_sms(text, default_currency)
