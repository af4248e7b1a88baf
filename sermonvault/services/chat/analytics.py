"""
Sermon Analytics Functions

Canned aggregations over one user's sermons, selected by the function
router and fed to answer synthesis.

Every handler has the signature:

    async def handler(db, user_id, parameters) -> dict | None

and returns a JSON-serializable dict, or None when no sermon matched.
Sermons are always selected WHERE user_id = :user_id; the aggregation over
the JSON list columns happens in Python so it behaves the same on
PostgreSQL and SQLite.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sermonvault.core.errors import FunctionHandlerError
from sermonvault.core.logging import get_logger
from sermonvault.models.sermon import Sermon
from sermonvault.services.chat.function_router import FunctionCall

logger = get_logger(__name__)

Handler = Callable[[AsyncSession, int, dict[str, Any]], Awaitable[dict[str, Any] | None]]

TOP_N = 5

SEASONS = {
    12: "Winter", 1: "Winter", 2: "Winter",
    3: "Spring", 4: "Spring", 5: "Spring",
    6: "Summer", 7: "Summer", 8: "Summer",
    9: "Fall", 10: "Fall", 11: "Fall",
}


# ========================================
# Helpers
# ========================================

async def _load_sermons(db: AsyncSession, user_id: int) -> list[Sermon]:
    result = await db.execute(
        select(Sermon)
        .where(Sermon.user_id == user_id)
        .order_by(Sermon.date.asc(), Sermon.id.asc())
    )
    return list(result.scalars().all())


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _mentions(needle: str, *values: str | list[str] | None) -> bool:
    """Case-insensitive substring match against strings and string lists."""
    needle = needle.lower().strip()
    for value in values:
        if not value:
            continue
        items = [value] if isinstance(value, str) else value
        if any(needle in item.lower() for item in items):
            return True
    return False


def _about(sermon: Sermon, topic: str) -> bool:
    return _mentions(
        topic,
        sermon.title,
        sermon.summary,
        sermon.topics,
        sermon.themes,
        sermon.tags,
        sermon.keywords,
    )


def _top(counter: Counter, n: int = TOP_N) -> list[dict[str, Any]]:
    return [{"value": value, "count": count} for value, count in counter.most_common(n)]


def _count(values: Iterable[list[str] | None]) -> Counter:
    counter: Counter = Counter()
    for items in values:
        counter.update(items or [])
    return counter


def _summary(sermon: Sermon) -> dict[str, Any]:
    return {
        "id": sermon.id,
        "title": sermon.title,
        "date": _iso(sermon.date),
        "primaryScripture": sermon.primary_scripture,
    }


def _text(parameters: dict[str, Any], name: str, function_name: str) -> str | None:
    """Optional string parameter; blank counts as absent."""
    value = parameters.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FunctionHandlerError(f"Parameter {name} must be a string", function_name, parameters)
    return value.strip() or None


def _require(parameters: dict[str, Any], name: str, function_name: str) -> str:
    value = _text(parameters, name, function_name)
    if value is None:
        raise FunctionHandlerError(f"Missing parameter: {name}", function_name, parameters)
    return value


def _period(sermon_date: date, timeframe: str) -> str:
    if timeframe == "month":
        return sermon_date.strftime("%Y-%m")
    if timeframe == "season":
        return f"{sermon_date.year} {SEASONS[sermon_date.month]}"
    return str(sermon_date.year)


# ========================================
# Handlers
# ========================================

async def get_topic_overview(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    topic = _require(parameters, "topic", "getTopicOverview")
    sermons = [s for s in await _load_sermons(db, user_id) if _about(s, topic)]
    if not sermons:
        return None

    dated = [s.date for s in sermons if s.date]
    return {
        "topic": topic,
        "sermonCount": len(sermons),
        "firstPreached": _iso(min(dated)) if dated else None,
        "lastPreached": _iso(max(dated)) if dated else None,
        "sermons": [
            {**_summary(s), "keyPoints": s.key_points or []}
            for s in sermons
        ],
        "relatedTopics": _top(_count(s.topics for s in sermons)),
        "scriptures": _top(_count(s.scriptures for s in sermons)),
    }


async def analyze_preaching_patterns(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    timeframe = _text(parameters, "timeframe", "analyzePreachingPatterns") or "year"
    if timeframe not in ("year", "month", "season"):
        raise FunctionHandlerError(f"Invalid timeframe: {timeframe}", "analyzePreachingPatterns", parameters)

    buckets: dict[str, list[Sermon]] = defaultdict(list)
    for sermon in await _load_sermons(db, user_id):
        if sermon.date:
            buckets[_period(sermon.date, timeframe)].append(sermon)
    if not buckets:
        return None

    return {
        "timeframe": timeframe,
        "periods": [
            {
                "period": period,
                "sermonCount": len(group),
                "topTopics": _top(_count(s.topics for s in group), 3),
                "topTags": _top(_count(s.tags for s in group), 3),
                "sermonTypes": dict(Counter(s.sermon_type for s in group if s.sermon_type)),
            }
            for period, group in sorted(buckets.items())
        ],
    }


async def find_related_sermons(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    """Rank the user's other sermons by shared tags, topics, scriptures and themes."""
    raw_id = parameters.get("sermonId")
    if raw_id in (None, ""):
        raise FunctionHandlerError("Missing parameter: sermonId", "findRelatedSermons", parameters)
    try:
        sermon_id = int(raw_id)
        limit = int(parameters.get("limit") or 5)
    except (TypeError, ValueError) as e:
        raise FunctionHandlerError("sermonId and limit must be integers", "findRelatedSermons", parameters) from e

    sermons = await _load_sermons(db, user_id)
    source = next((s for s in sermons if s.id == sermon_id), None)
    if source is None:
        raise FunctionHandlerError(f"Sermon {sermon_id} not found", "findRelatedSermons", parameters)

    def shared(a: list[str] | None, b: list[str] | None) -> list[str]:
        return sorted(set(a or []) & set(b or []))

    related = []
    for other in sermons:
        if other.id == source.id:
            continue
        tags = shared(source.tags, other.tags)
        topics = shared(source.topics, other.topics)
        scriptures = shared(source.scriptures, other.scriptures)
        themes = shared(source.themes, other.themes)
        score = 2 * len(scriptures) + len(tags) + len(topics) + len(themes)
        if score:
            related.append({
                **_summary(other),
                "score": score,
                "sharedTags": tags,
                "sharedTopics": topics,
                "sharedScriptures": scriptures,
                "sharedThemes": themes,
            })

    if not related:
        return None
    related.sort(key=lambda r: (-r["score"], r["id"]))
    return {"sermon": _summary(source), "related": related[:max(limit, 1)]}


async def analyze_scripture_usage(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    book_filter = _text(parameters, "book", "analyzeScriptureUsage")
    book = (book_filter or "").lower()

    references: Counter = Counter()
    books: Counter = Counter()
    used_in: dict[str, list[str]] = defaultdict(list)
    for sermon in await _load_sermons(db, user_id):
        refs = set(sermon.scriptures or [])
        if sermon.primary_scripture:
            refs.add(sermon.primary_scripture)
        for ref in sorted(refs):
            if book and not ref.lower().startswith(book):
                continue
            references[ref] += 1
            books[ref.rsplit(" ", 1)[0] if " " in ref else ref] += 1
            used_in[ref].append(sermon.title)

    if not references:
        return None
    return {
        "book": book_filter,
        "totalReferences": sum(references.values()),
        "books": [{"book": b, "count": c} for b, c in books.most_common()],
        "references": [
            {"reference": ref, "count": count, "sermons": used_in[ref]}
            for ref, count in references.most_common(20)
        ],
    }


async def analyze_theme_development(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    theme = _require(parameters, "theme", "analyzeThemeDevelopment")
    sermons = [s for s in await _load_sermons(db, user_id) if _about(s, theme)]
    if not sermons:
        return None

    return {
        "theme": theme,
        "sermonCount": len(sermons),
        "timeline": [
            {
                **_summary(s),
                "keyPoints": s.key_points or [],
                "tone": s.tone,
                "callsToAction": s.calls_to_action or [],
            }
            for s in sermons
        ],
    }


async def _collect(
    db: AsyncSession,
    user_id: int,
    topic: str | None,
    attribute: str,
) -> list[dict[str, Any]]:
    items = []
    for sermon in await _load_sermons(db, user_id):
        if topic and not _about(sermon, topic):
            continue
        for text in getattr(sermon, attribute) or []:
            items.append({**_summary(sermon), "text": text})
    return items


async def analyze_illustrations(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    topic = _text(parameters, "topic", "analyzeIllustrations")
    items = await _collect(db, user_id, topic, "illustrations")
    if not items:
        return None
    return {"topic": topic, "count": len(items), "illustrations": items}


async def analyze_sermon_series(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    series_name = _text(parameters, "seriesName", "analyzeSermonSeries")

    groups: dict[str, list[Sermon]] = defaultdict(list)
    for sermon in await _load_sermons(db, user_id):
        if not sermon.series:
            continue
        if series_name and not _mentions(series_name, sermon.series):
            continue
        groups[sermon.series].append(sermon)
    if not groups:
        return None

    series = []
    for name, group in groups.items():
        dated = [s.date for s in group if s.date]
        series.append({
            "series": name,
            "sermonCount": len(group),
            "firstDate": _iso(min(dated)) if dated else None,
            "lastDate": _iso(max(dated)) if dated else None,
            "topics": _top(_count(s.topics for s in group), 3),
            "sermons": [_summary(s) for s in group],
        })
    series.sort(key=lambda s: -s["sermonCount"])
    return {"seriesName": series_name, "series": series}


async def analyze_sermon_style(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    timeframe = _text(parameters, "timeframe", "analyzeSermonStyle") or "all"
    windows = {"all": None, "year": 365, "month": 30}
    if timeframe not in windows:
        raise FunctionHandlerError(f"Invalid timeframe: {timeframe}", "analyzeSermonStyle", parameters)

    sermons = await _load_sermons(db, user_id)
    if windows[timeframe]:
        cutoff = date.today() - timedelta(days=windows[timeframe])
        sermons = [s for s in sermons if s.date and s.date >= cutoff]
    if not sermons:
        return None

    word_counts = [s.word_count for s in sermons if s.word_count]
    return {
        "timeframe": timeframe,
        "sermonCount": len(sermons),
        "sermonTypes": dict(Counter(s.sermon_type for s in sermons if s.sermon_type)),
        "tones": dict(Counter(s.tone for s in sermons if s.tone)),
        "averageWordCount": round(sum(word_counts) / len(word_counts)) if word_counts else None,
        "averageKeyPoints": round(sum(len(s.key_points or []) for s in sermons) / len(sermons), 1),
        "illustrationsPerSermon": round(sum(len(s.illustrations or []) for s in sermons) / len(sermons), 1),
    }


async def analyze_personal_stories(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    topic = _text(parameters, "topic", "analyzePersonalStories")
    items = await _collect(db, user_id, topic, "personal_stories")
    if not items:
        return None
    return {"topic": topic, "count": len(items), "personalStories": items}


async def analyze_sermon_tone(db: AsyncSession, user_id: int, parameters: dict[str, Any]) -> dict[str, Any] | None:
    topic = _text(parameters, "topic", "analyzeSermonTone")
    sermons = [
        s for s in await _load_sermons(db, user_id)
        if s.tone and (not topic or _about(s, topic))
    ]
    if not sermons:
        return None
    return {
        "topic": topic,
        "tones": dict(Counter(s.tone.lower() for s in sermons)),
        "sermons": [{**_summary(s), "tone": s.tone} for s in sermons],
    }


FUNCTION_HANDLERS: dict[str, Handler] = {
    "getTopicOverview": get_topic_overview,
    "analyzePreachingPatterns": analyze_preaching_patterns,
    "findRelatedSermons": find_related_sermons,
    "analyzeScriptureUsage": analyze_scripture_usage,
    "analyzeThemeDevelopment": analyze_theme_development,
    "analyzeIllustrations": analyze_illustrations,
    "analyzeSermonSeries": analyze_sermon_series,
    "analyzeSermonStyle": analyze_sermon_style,
    "analyzePersonalStories": analyze_personal_stories,
    "analyzeSermonTone": analyze_sermon_tone,
}


async def run_function(db: AsyncSession, user_id: int, call: FunctionCall) -> dict[str, Any] | None:
    """
    Execute an analytics function for user_id.

    Raises:
        FunctionHandlerError: unknown function, bad parameters or query failure
    """
    handler = FUNCTION_HANDLERS.get(call.name)
    if handler is None:
        raise FunctionHandlerError(f"Unknown function: {call.name}", call.name, call.parameters)

    try:
        result = await handler(db, user_id, call.parameters)
    except FunctionHandlerError:
        raise
    except SQLAlchemyError as e:
        raise FunctionHandlerError(f"Query failed: {e}", call.name, call.parameters) from e
    except (TypeError, ValueError, AttributeError) as e:
        raise FunctionHandlerError(f"Bad parameters: {e}", call.name, call.parameters) from e

    logger.info(
        "analytics_function_executed",
        function=call.name,
        user_id=user_id,
        empty=result is None,
    )
    return result
