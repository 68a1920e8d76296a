"""Language code normalization utilities."""

# ISO 639-1 (2-letter) to ISO 639-2/B (3-letter) mapping
# ffprobe reports stream language tags as ISO 639-2, mostly the /B variant
ISO_639_1_TO_639_2 = {
    "en": "eng",  # English
    "de": "ger",  # German
    "es": "spa",  # Spanish
    "ja": "jpn",  # Japanese
    "fr": "fre",  # French
    "it": "ita",  # Italian
    "pt": "por",  # Portuguese
    "ru": "rus",  # Russian
    "ko": "kor",  # Korean
    "zh": "chi",  # Chinese
    "nl": "dut",  # Dutch
    "pl": "pol",  # Polish
    "sv": "swe",  # Swedish
    "da": "dan",  # Danish
    "no": "nor",  # Norwegian
    "fi": "fin",  # Finnish
    "cs": "cze",  # Czech
    "tr": "tur",  # Turkish
    "ar": "ara",  # Arabic
    "hi": "hin",  # Hindi
}

# ISO 639-2/T (terminology) to ISO 639-2/B (bibliographic) for the codes
# where the two differ
ISO_639_2_T_TO_B = {
    "sqi": "alb",  # Albanian
    "hye": "arm",  # Armenian
    "eus": "baq",  # Basque
    "mya": "bur",  # Burmese
    "zho": "chi",  # Chinese
    "ces": "cze",  # Czech
    "nld": "dut",  # Dutch
    "fra": "fre",  # French
    "kat": "geo",  # Georgian
    "deu": "ger",  # German
    "ell": "gre",  # Greek
    "isl": "ice",  # Icelandic
    "mkd": "mac",  # Macedonian
    "mri": "mao",  # Maori
    "msa": "may",  # Malay
    "fas": "per",  # Persian
    "ron": "rum",  # Romanian
    "slk": "slo",  # Slovak
    "bod": "tib",  # Tibetan
    "cym": "wel",  # Welsh
}

# Language tags that mean "no language" in container metadata
UNDETERMINED = frozenset({"", "und", "unk", "mis", "zxx"})


def normalize_language_code(code: str) -> str:
    """Normalize a language code to 3-letter ISO 639-2/B.

    Used for configured codes and probed stream tags alike. Two-letter
    codes are mapped through ISO_639_1_TO_639_2 and /T codes through
    ISO_639_2_T_TO_B; everything else is lower-cased and stripped.

    Args:
        code: Language code (2 or 3 letters)

    Returns:
        Normalized code, or the empty string for blank input
    """
    if not code:
        return ""

    code = code.strip().lower()
    if len(code) == 2:
        return ISO_639_1_TO_639_2.get(code, code)
    return ISO_639_2_T_TO_B.get(code, code)


def is_undetermined(code: str | None) -> bool:
    """Check whether a stream language tag carries no usable language."""
    return (code or "").strip().lower() in UNDETERMINED
