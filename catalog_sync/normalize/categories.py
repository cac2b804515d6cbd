"""Map feed category names and product names onto storefront sections."""

from typing import Dict, List, Optional

SECTIONS = ("piyano", "gitar", "davul", "yayli", "uflemeli", "elektronik", "amfi", "aksesuar")

DEFAULT_SECTION = "aksesuar"

PIANO_TERMS = ("piyano", "piano", "klavye", "keyboard", "org", "tuşlu", "tuslu", "synthesizer", "synth")

CATEGORY_SECTIONS: Dict[str, str] = {
    # Guitars
    "klasik gitar": "gitar",
    "elektro gitar": "gitar",
    "akustik gitar": "gitar",
    "bas gitar": "gitar",
    "gitar": "gitar",
    "gitarlar": "gitar",
    # Keys
    "piyano": "piyano",
    "dijital piyano": "piyano",
    "akustik piyano": "piyano",
    "klavye": "piyano",
    "org": "piyano",
    "tuşlu çalgılar": "piyano",
    # Drums
    "davul": "davul",
    "bateri": "davul",
    "perküsyon": "davul",
    "davul seti": "davul",
    "elektronik davul": "davul",
    # Strings
    "keman": "yayli",
    "viyola": "yayli",
    "çello": "yayli",
    "kontrbas": "yayli",
    "yaylı çalgılar": "yayli",
    # Wind
    "flüt": "uflemeli",
    "klarnet": "uflemeli",
    "saksafon": "uflemeli",
    "trompet": "uflemeli",
    "üflemeli çalgılar": "uflemeli",
    # Electronic
    "synthesizer": "elektronik",
    "midi controller": "elektronik",
    "dj ekipmanları": "elektronik",
    "elektronik müzik": "elektronik",
    # Amps and effects
    "amfi": "amfi",
    "efekt pedalı": "amfi",
    "gitar amfisi": "amfi",
    "bas amfisi": "amfi",
    "amfi ve efekt": "amfi",
    # Accessories
    "aksesuar": "aksesuar",
    "gitar aksesuar": "aksesuar",
    "kablo": "aksesuar",
    "çanta": "aksesuar",
    "mızrap": "aksesuar",
    "tel": "aksesuar",
}

# Product-name keywords per section, checked in this order
NAME_TERMS = (
    ("piyano", PIANO_TERMS),
    ("gitar", ("gitar", "guitar")),
    ("davul", ("davul", "bateri", "perküsyon", "drum", "trampet", "zil", "cymbal")),
    ("yayli", ("keman", "viyola", "çello", "cello", "kontrbas", "violin", "viola")),
    ("uflemeli", ("flüt", "klarnet", "saksafon", "trompet", "trombon", "obua", "fagot",
                  "flute", "clarinet", "saxophone")),
    ("elektronik", ("dj", "mixer", "controller", "kontroller", "launchpad", "sampler")),
    ("amfi", ("amfi", "amplifier", "amp", "hoparlör", "speaker", "kabin", "cabinet")),
    ("aksesuar", ("kılıf", "stand", "sehpa", "pedal", "tuner", "akort", "kablo", "tel", "pena",
                  "metronom", "yedek parça", "bakım", "temizlik")),
)


def _lower(text: str) -> str:
    # "İ".lower() yields "i" plus a combining dot
    return text.replace("İ", "i").lower()


def category_section(category_name: Optional[str]) -> Optional[str]:
    """
    Map a feed category name to a storefront section.

    Piano terms win first, then an exact match, then the first mapped
    name contained in the category. Returns None when nothing matches.
    """
    if not category_name or not category_name.strip():
        return None

    name = _lower(category_name.strip())

    if any(term in name for term in PIANO_TERMS):
        return "piyano"

    if name in CATEGORY_SECTIONS:
        return CATEGORY_SECTIONS[name]

    for key, section in CATEGORY_SECTIONS.items():
        if key in name:
            return section

    return None


def sections_for_product_name(name: str) -> List[str]:
    """Derive storefront sections from keywords in a product name."""
    lowered = _lower(name or "")
    sections = [section for section, terms in NAME_TERMS if any(term in lowered for term in terms)]
    return sections or [DEFAULT_SECTION]
