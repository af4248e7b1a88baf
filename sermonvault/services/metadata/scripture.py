"""
Scripture reference finder.

Finds Bible references such as "John 3:16", "1 Cor 13:4-7" or "Psalm 23"
in sermon text and returns them in a canonical "Book chapter:verse" form.
The classifier passes them to the model as pre-parsed hints, which keeps
the extracted scripture lists accurate on long documents that get sampled.
"""

import re

# Canonical book name → accepted spellings / abbreviations (lowercase, no dots)
_BOOKS: dict[str, tuple[str, ...]] = {
    "Genesis": ("genesis", "gen", "gn"),
    "Exodus": ("exodus", "exod"),
    "Leviticus": ("leviticus", "lev", "lv"),
    "Numbers": ("numbers", "num", "nm"),
    "Deuteronomy": ("deuteronomy", "deut", "dt"),
    "Joshua": ("joshua", "josh"),
    "Judges": ("judges", "judg"),
    "Ruth": ("ruth",),
    "1 Samuel": ("1 samuel", "1 sam", "i samuel"),
    "2 Samuel": ("2 samuel", "2 sam", "ii samuel"),
    "1 Kings": ("1 kings", "1 kgs", "i kings"),
    "2 Kings": ("2 kings", "2 kgs", "ii kings"),
    "1 Chronicles": ("1 chronicles", "1 chron", "1 chr"),
    "2 Chronicles": ("2 chronicles", "2 chron", "2 chr"),
    "Ezra": ("ezra",),
    "Nehemiah": ("nehemiah", "neh"),
    "Esther": ("esther", "esth"),
    "Job": ("job",),
    "Psalms": ("psalms", "psalm", "ps", "psa"),
    "Proverbs": ("proverbs", "prov", "prv"),
    "Ecclesiastes": ("ecclesiastes", "eccl", "eccles"),
    "Song of Solomon": ("song of solomon", "song of songs"),
    "Isaiah": ("isaiah", "isa"),
    "Jeremiah": ("jeremiah", "jer"),
    "Lamentations": ("lamentations", "lam"),
    "Ezekiel": ("ezekiel", "ezek"),
    "Daniel": ("daniel", "dan"),
    "Hosea": ("hosea", "hos"),
    "Joel": ("joel",),
    "Amos": ("amos",),
    "Obadiah": ("obadiah", "obad"),
    "Jonah": ("jonah",),
    "Micah": ("micah", "mic"),
    "Nahum": ("nahum", "nah"),
    "Habakkuk": ("habakkuk", "hab"),
    "Zephaniah": ("zephaniah", "zeph"),
    "Haggai": ("haggai", "hag"),
    "Zechariah": ("zechariah", "zech"),
    "Malachi": ("malachi", "mal"),
    "Matthew": ("matthew", "matt", "mt"),
    "Mark": ("mark", "mk"),
    "Luke": ("luke", "lk"),
    "John": ("john", "jn"),
    "Acts": ("acts",),
    "Romans": ("romans", "rom"),
    "1 Corinthians": ("1 corinthians", "1 cor", "i corinthians"),
    "2 Corinthians": ("2 corinthians", "2 cor", "ii corinthians"),
    "Galatians": ("galatians", "gal"),
    "Ephesians": ("ephesians", "eph"),
    "Philippians": ("philippians", "phil"),
    "Colossians": ("colossians", "col"),
    "1 Thessalonians": ("1 thessalonians", "1 thess"),
    "2 Thessalonians": ("2 thessalonians", "2 thess"),
    "1 Timothy": ("1 timothy", "1 tim"),
    "2 Timothy": ("2 timothy", "2 tim"),
    "Titus": ("titus",),
    "Philemon": ("philemon", "philem"),
    "Hebrews": ("hebrews", "heb"),
    "James": ("james", "jas"),
    "1 Peter": ("1 peter", "1 pet"),
    "2 Peter": ("2 peter", "2 pet"),
    "1 John": ("1 john", "1 jn"),
    "2 John": ("2 john", "2 jn"),
    "3 John": ("3 john", "3 jn"),
    "Jude": ("jude",),
    "Revelation": ("revelation", "rev"),
}

_ALIASES: dict[str, str] = {
    alias: book for book, aliases in _BOOKS.items() for alias in aliases
}

# Longest aliases first so "1 john" wins over "john"
_BOOK_PATTERN = "|".join(
    re.escape(alias).replace(r"\ ", r"\s+")
    for alias in sorted(_ALIASES, key=len, reverse=True)
)

_REFERENCE = re.compile(
    rf"\b(?P<book>{_BOOK_PATTERN})\.?\s+"
    r"(?P<chapter>\d{1,3})"
    r"(?::(?P<verse>\d{1,3})(?:\s*[-–]\s*(?P<end>\d{1,3}))?)?\b",
    re.IGNORECASE,
)


def _canonical_book(matched: str) -> str:
    return _ALIASES[" ".join(matched.lower().split())]


def find_scripture_references(text: str) -> list[str]:
    """
    Return the unique scripture references in text, in order of appearance.

    Example:
        >>> find_scripture_references("Read John 3:16 and 1 Cor 13:4-7.")
        ['John 3:16', '1 Corinthians 13:4-7']

    Bare chapter references ("Psalm 23") need a chapter number; a book name
    alone never matches, so "James said" or "Mark my words" are ignored.
    """
    seen: list[str] = []
    for match in _REFERENCE.finditer(text):
        reference = f"{_canonical_book(match.group('book'))} {match.group('chapter')}"
        if match.group("verse"):
            reference += f":{match.group('verse')}"
            if match.group("end"):
                reference += f"-{match.group('end')}"
        if reference not in seen:
            seen.append(reference)
    return seen
