"""
Language name <-> code table.

Names are the capitalized English names users pass around ("Persian",
"English"). Each name maps to an ordered tuple of codes: the first one is the
ISO 639-2/B code mkvmerge writes and is used whenever a code is output, the
others are accepted when reading a container (639-2/T and 639-1 aliases).

The table is loaded once into read-only mappings. Several names may share
codes (aliases such as "Farsi"), the reverse lookup returns the first name in
table order.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class LanguageSpec:
    """A language name and its accepted codes (first code is canonical)."""

    name: str
    codes: Tuple[str, ...]

    @property
    def canonical_code(self) -> str:
        return self.codes[0]


_LANGUAGE_TABLE: List[Dict] = [
    {"name": "English", "code": ["eng", "en"]},
    {"name": "Persian", "code": ["per", "fas", "fa"]},
    {"name": "Farsi", "code": ["per", "fas", "fa"]},
    {"name": "French", "code": ["fre", "fra", "fr"]},
    {"name": "German", "code": ["ger", "deu", "de"]},
    {"name": "Spanish", "code": ["spa", "es"]},
    {"name": "Italian", "code": ["ita", "it"]},
    {"name": "Portuguese", "code": ["por", "pt"]},
    {"name": "Dutch", "code": ["dut", "nld", "nl"]},
    {"name": "Swedish", "code": ["swe", "sv"]},
    {"name": "Norwegian", "code": ["nor", "no", "nob", "nb"]},
    {"name": "Danish", "code": ["dan", "da"]},
    {"name": "Finnish", "code": ["fin", "fi"]},
    {"name": "Icelandic", "code": ["ice", "isl", "is"]},
    {"name": "Polish", "code": ["pol", "pl"]},
    {"name": "Czech", "code": ["cze", "ces", "cs"]},
    {"name": "Slovak", "code": ["slo", "slk", "sk"]},
    {"name": "Hungarian", "code": ["hun", "hu"]},
    {"name": "Romanian", "code": ["rum", "ron", "ro"]},
    {"name": "Bulgarian", "code": ["bul", "bg"]},
    {"name": "Greek", "code": ["gre", "ell", "el"]},
    {"name": "Russian", "code": ["rus", "ru"]},
    {"name": "Ukrainian", "code": ["ukr", "uk"]},
    {"name": "Serbian", "code": ["srp", "sr"]},
    {"name": "Croatian", "code": ["hrv", "hr"]},
    {"name": "Slovenian", "code": ["slv", "sl"]},
    {"name": "Turkish", "code": ["tur", "tr"]},
    {"name": "Arabic", "code": ["ara", "ar"]},
    {"name": "Hebrew", "code": ["heb", "he"]},
    {"name": "Kurdish", "code": ["kur", "ku"]},
    {"name": "Armenian", "code": ["arm", "hye", "hy"]},
    {"name": "Georgian", "code": ["geo", "kat", "ka"]},
    {"name": "Hindi", "code": ["hin", "hi"]},
    {"name": "Urdu", "code": ["urd", "ur"]},
    {"name": "Bengali", "code": ["ben", "bn"]},
    {"name": "Tamil", "code": ["tam", "ta"]},
    {"name": "Thai", "code": ["tha", "th"]},
    {"name": "Vietnamese", "code": ["vie", "vi"]},
    {"name": "Indonesian", "code": ["ind", "id"]},
    {"name": "Malay", "code": ["may", "msa", "ms"]},
    {"name": "Chinese", "code": ["chi", "zho", "zh"]},
    {"name": "Japanese", "code": ["jpn", "ja"]},
    {"name": "Korean", "code": ["kor", "ko"]},
    {"name": "Undetermined", "code": ["und"]},
]


def _build_tables() -> Tuple[Mapping[str, LanguageSpec], Mapping[str, str]]:
    by_name: Dict[str, LanguageSpec] = {}
    name_by_code: Dict[str, str] = {}
    for entry in _LANGUAGE_TABLE:
        codes = tuple(code.lower() for code in entry["code"])
        if not codes:
            raise ValueError(f"Language {entry['name']!r} has no codes")
        by_name[entry["name"]] = LanguageSpec(name=entry["name"], codes=codes)
        for code in codes:
            # First name listed wins for display
            name_by_code.setdefault(code, entry["name"])
    return MappingProxyType(by_name), MappingProxyType(name_by_code)


LANGUAGES, _NAME_BY_CODE = _build_tables()


def get_language_spec(name: str) -> Optional[LanguageSpec]:
    """Exact, case-sensitive lookup of a language name."""
    return LANGUAGES.get(name.strip()) if name else None


def get_language_codes(name: str) -> Optional[Tuple[str, ...]]:
    """All accepted codes for a language name, or None when unmapped."""
    spec = get_language_spec(name)
    return spec.codes if spec else None


def get_language_code_from_name(name: str) -> Optional[str]:
    """Canonical (output) code for a language name."""
    spec = get_language_spec(name)
    return spec.canonical_code if spec else None


def get_language_name_by_code(code: str) -> Optional[str]:
    """Display name for a code; first table entry listing it wins."""
    if not code:
        return None
    return _NAME_BY_CODE.get(code.strip().lower())


def is_language_match(code: str, language_name: str) -> bool:
    """
    Check whether a track language code belongs to a language name.

    Args:
        code: Code read from the container (case-insensitive)
        language_name: Table name (case-sensitive, e.g. "Persian")

    Returns:
        bool: False for unknown names or empty codes
    """
    codes = get_language_codes(language_name)
    if not codes or not code:
        return False
    return code.strip().lower() in codes


def list_language_names() -> List[str]:
    """Language names in table order, for UI select boxes and CLI help."""
    return list(LANGUAGES.keys())
