"""
Insurance Card Parser
Turns raw OCR text from an insurance card into structured fields.

Two passes over the text:
1. Line scan - each cleaned line is checked for field labels (French/English)
   and the value following the label is captured. First match wins.
2. Whole-text fallback - policy/member numbers still missing are searched
   for in the full text with newlines collapsed.
"""
import re
import logging
from typing import Dict, List, NamedTuple, Optional, Pattern

import config
from schemas import InsuranceCardFields

logger = logging.getLogger(__name__)

# "N°", "Nº" or "No" left in front of a number value
NUMBER_MARKER = re.compile(r"^(?:n°|nº|no\.?(?=\s))\s*", re.IGNORECASE)
# A purely alphabetic word after the first token
TRAILING_WORD = re.compile(r"\s[^\W\d_]+(?=\s|$)")


class FieldRule(NamedTuple):
    """Label rule for one card field, patterns in priority order"""
    field: str
    keywords: List[str]
    patterns: List[Pattern]


def clean_line(line: str) -> str:
    """Replace ':' and '|' separators, collapse whitespace and trim"""
    line = re.sub(r"[:|]", " ", line)
    return re.sub(r"\s+", " ", line).strip()


def match_label(line: str, patterns: List[Pattern]) -> Optional[str]:
    """
    Return the text following the first label pattern that matches the line,
    or None when no label spelling matches.
    """
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def classify_sex(value: str) -> Optional[str]:
    """
    Map a captured sex value to "M" or "F".

    Whole words are checked first (so "Feminine" is F), then single letters.
    Male is always checked before female.
    """
    upper = value.upper()
    tokens = re.findall(r"[^\W\d_]+", upper)

    if any(t in config.MALE_TOKENS or t.startswith(config.MALE_PREFIXES) for t in tokens):
        return "M"
    if any(t in config.FEMALE_TOKENS or t.startswith(config.FEMALE_PREFIXES) for t in tokens):
        return "F"

    # OCR noise like "MF" or "M/F"
    if any(letter in upper for letter in config.MALE_LETTERS):
        return "M"
    if any(letter in upper for letter in config.FEMALE_LETTERS):
        return "F"
    return None


def _build_rules(card_fields: Dict) -> List[FieldRule]:
    rules = []
    for field_name, template in card_fields.items():
        patterns = [
            re.compile(label + r"\s*[:|]?\s*(.+)", re.IGNORECASE)
            for label in template["labels"]
        ]
        rules.append(FieldRule(field_name, template["detect_keywords"], patterns))
    return rules


def _build_fallback_patterns(card_fields: Dict) -> Dict[str, Pattern]:
    patterns = {}
    for field_name in config.NUMBER_FIELDS:
        keywords = "|".join(card_fields[field_name]["fallback_keywords"])
        min_length = str(config.MIN_FALLBACK_NUMBER_LENGTH)
        # Value must start on a word edge, not in the middle of a token
        patterns[field_name] = re.compile(
            r"(?:" + keywords + r")[^0-9]*(?<![A-Za-z0-9\-])([A-Z0-9\-]{" + min_length + r",})",
            re.IGNORECASE,
        )
    return patterns


class InsuranceCardParser:
    """
    Stateless parser for insurance card OCR text.
    Compiled rules are read-only, one instance can be shared between requests.
    """

    def __init__(self, card_fields: Optional[Dict] = None):
        card_fields = card_fields or config.CARD_FIELDS
        self.rules = _build_rules(card_fields)
        self.fallback_patterns = _build_fallback_patterns(card_fields)

    def parse(self, raw_text: str) -> InsuranceCardFields:
        """Extract card fields from raw OCR text. Never raises."""
        lines = [clean_line(line) for line in raw_text.splitlines() if line.strip()]
        logger.debug("Parsing %s OCR lines", len(lines))

        fields = InsuranceCardFields(raw_text=raw_text)
        for index, line in enumerate(lines):
            next_line = lines[index + 1] if index + 1 < len(lines) else None
            fields = self._scan_line(fields, line, next_line)

        fields = self._apply_fallback(fields, raw_text)
        logger.debug("Extracted %s card fields", fields.extracted_count())
        return fields

    def _scan_line(
        self, fields: InsuranceCardFields, line: str, next_line: Optional[str]
    ) -> InsuranceCardFields:
        lowered = line.lower()
        updates = {}

        for rule in self.rules:
            if getattr(fields, rule.field) is not None:
                continue
            if not any(keyword in lowered for keyword in rule.keywords):
                continue

            value = self._extract_value(rule, line, next_line)
            if value is not None:
                logger.debug("Found %s: %r", rule.field, value)
                updates[rule.field] = value

        if not updates:
            return fields
        return fields.model_copy(update=updates)

    def _extract_value(self, rule: FieldRule, line: str, next_line: Optional[str]):
        captured = match_label(line, rule.patterns)

        if rule.field in config.NAME_FIELDS:
            value = self._accept_name(rule.field, captured)
            # Label alone on its line, value printed underneath
            if value is None and rule.field == "subscriber_name" and next_line:
                value = self._accept_name(rule.field, next_line)
            return value

        if captured is None:
            return None

        if rule.field in config.NUMBER_FIELDS:
            return self._clean_number(captured)
        if rule.field == "age_years":
            return self._parse_age(captured)
        if rule.field == "sex":
            return classify_sex(captured)
        return captured

    def _accept_name(self, field_name: str, value: Optional[str]) -> Optional[str]:
        if not value or len(value) <= config.MIN_NAME_LENGTH or value.isdigit():
            return None
        if field_name == "insured_name":
            lowered = value.lower()
            if any(word in lowered for word in config.INSURED_NAME_EXCLUDED):
                return None
        return value

    def _clean_number(self, value: str) -> Optional[str]:
        value = NUMBER_MARKER.sub("", value)
        # Number followed by plain words: leave it to the whole-text pass
        if TRAILING_WORD.search(value):
            return None
        # Space-grouped digits are joined ("2023 000145")
        cleaned = re.sub(r"[^A-Za-z0-9\-]", "", value)
        return cleaned or None

    def _parse_age(self, value: str) -> Optional[int]:
        match = re.search(r"[0-9]+", value)
        if not match:
            return None
        return int(match.group(0))

    def _apply_fallback(self, fields: InsuranceCardFields, raw_text: str) -> InsuranceCardFields:
        missing = [name for name in config.NUMBER_FIELDS if getattr(fields, name) is None]
        if not missing:
            return fields

        collapsed = re.sub(r"\s+", " ", raw_text).strip()
        updates = {}
        for field_name in missing:
            match = self.fallback_patterns[field_name].search(collapsed)
            if match:
                logger.debug("Found %s (fallback): %r", field_name, match.group(1))
                updates[field_name] = match.group(1)

        if not updates:
            return fields
        return fields.model_copy(update=updates)


_parser = InsuranceCardParser()


def extract(raw_text: str) -> InsuranceCardFields:
    """Extract structured insurance card fields from recognized text"""
    return _parser.parse(raw_text)
