"""
Analytics function routing.

A tool-use call lets Claude map a question about the user's preaching
history onto one of the analytics functions in SERMON_FUNCTIONS, with its
parameters extracted from the question.
"""

from dataclasses import dataclass, field
from typing import Any

from sermonvault.core.logging import get_logger
from sermonvault.services.llm import LLMService

logger = get_logger(__name__)


SERMON_FUNCTIONS: list[dict[str, Any]] = [
    {
        "name": "getTopicOverview",
        "description": "Get an overview of sermons about a specific topic",
        "input_schema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": "The topic to analyze (e.g., 'forgiveness', 'grace', 'prayer')",
                },
            },
            "required": ["topic"],
        },
    },
    {
        "name": "analyzePreachingPatterns",
        "description": "Analyze preaching patterns over time",
        "input_schema": {
            "type": "object",
            "properties": {
                "timeframe": {
                    "type": "string",
                    "enum": ["year", "month", "season"],
                    "description": "The timeframe to analyze patterns over",
                },
            },
            "required": ["timeframe"],
        },
    },
    {
        "name": "findRelatedSermons",
        "description": "Find sermons related to a specific sermon",
        "input_schema": {
            "type": "object",
            "properties": {
                "sermonId": {
                    "type": "integer",
                    "description": "The id of the sermon to find related content for",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of related sermons to return",
                    "default": 5,
                },
            },
            "required": ["sermonId"],
        },
    },
    {
        "name": "analyzeScriptureUsage",
        "description": "Analyze how scriptures are used in sermons",
        "input_schema": {
            "type": "object",
            "properties": {
                "book": {
                    "type": "string",
                    "description": "Optional Bible book to filter by (e.g., 'Romans', 'John')",
                },
            },
        },
    },
    {
        "name": "analyzeThemeDevelopment",
        "description": "Analyze how a theme has developed over time",
        "input_schema": {
            "type": "object",
            "properties": {
                "theme": {
                    "type": "string",
                    "description": "The theme to analyze development of",
                },
            },
            "required": ["theme"],
        },
    },
    {
        "name": "analyzeIllustrations",
        "description": "Analyze the use of illustrations in sermons",
        "input_schema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": "Optional topic to filter illustrations by",
                },
            },
        },
    },
    {
        "name": "analyzeSermonSeries",
        "description": "Analyze sermon series data",
        "input_schema": {
            "type": "object",
            "properties": {
                "seriesName": {
                    "type": "string",
                    "description": "Optional specific series name to analyze",
                },
            },
        },
    },
    {
        "name": "analyzeSermonStyle",
        "description": "Analyze preaching styles and patterns",
        "input_schema": {
            "type": "object",
            "properties": {
                "timeframe": {
                    "type": "string",
                    "enum": ["all", "year", "month"],
                    "description": "Timeframe to analyze sermon styles over",
                    "default": "all",
                },
            },
        },
    },
    {
        "name": "analyzePersonalStories",
        "description": "Analyze the use of personal stories in sermons",
        "input_schema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": "Optional topic to filter personal stories by",
                },
            },
        },
    },
    {
        "name": "analyzeSermonTone",
        "description": "Analyze the emotional tone of sermons",
        "input_schema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": "Optional topic to analyze tone for",
                },
            },
        },
    },
]

FUNCTION_NAMES: frozenset[str] = frozenset(fn["name"] for fn in SERMON_FUNCTIONS)

ROUTER_PROMPT = """You are a sermon database assistant. Your job is to:
1. Understand the user's question about their sermon history
2. Classify it into the appropriate database function
3. Extract relevant parameters

Be precise in parameter extraction and function selection. If no function fits, answer without calling one.

Example mappings:
- "What have I preached about grace?" → getTopicOverview with topic: "grace"
- "Show me sermons like my message on John 3:16" → findRelatedSermons
- "How has my teaching on prayer evolved?" → analyzeThemeDevelopment with theme: "prayer"
- "What illustrations do I use when teaching about faith?" → analyzeIllustrations with topic: "faith"
"""


@dataclass
class FunctionCall:
    """An analytics function chosen for a question."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


async def route_function(message: str, llm: LLMService) -> FunctionCall | None:
    """
    Pick the analytics function for message.

    Returns None when the model declines to call a tool or names a function
    outside the catalog.
    """
    selection = await llm.call_tool(
        system=ROUTER_PROMPT,
        messages=[{"role": "user", "content": message}],
        tools=SERMON_FUNCTIONS,
    )
    if selection is None:
        return None

    name, parameters = selection
    if name not in FUNCTION_NAMES:
        logger.warning("function_router_unknown_function", function=name)
        return None

    logger.info("function_routed", function=name, parameters=parameters)
    return FunctionCall(name=name, parameters=parameters)
