"""Support inbox tool-calling demonstration.

The model reads one customer email and must pick exactly one of the tools
below; the matching local handler is then run.
"""
from __future__ import annotations

import copy
import inspect
import json
import logging
from dataclasses import dataclass
from textwrap import dedent
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from config import Settings
from errors import (
    CatalogMismatchError,
    MalformedArgumentsError,
    NoActionSelectedError,
    UnknownActionError,
)
from llm_client import CancelToken, ChatBackend, CompletionRequest

logger = logging.getLogger(__name__)

# -------------------------------
# Tool schema for the model
# -------------------------------
TOOLS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "bookSalesDemo",
            "description": "Book a sales demo with someone from our sales team.",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "The customer's name.",
                    }
                },
                "required": ["name"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "searchDocumentation",
            "description": (
                "Retrieve information from our internal documentation. "
                "Call this function when a user has a technical question."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The query to search the documentation",
                    }
                },
                "required": ["query"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "bugFound",
            "description": (
                "Alert the technical support team about a bug a user experienced. "
                "Call this function when a user tells you about a bug or error."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "bug": {
                        "type": "string",
                        "description": "The description of the bug",
                    }
                },
                "required": ["bug"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "forwardToHuman",
            "description": (
                "Forward the mail to a human from our support team. "
                "Call this tool if none of the other tools can be used."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "message": {
                        "type": "string",
                        "description": "The mail sent by the user",
                    }
                },
                "required": ["message"],
                "additionalProperties": False,
            },
        },
    },
]

# -------------------------------
# Actual Python implementations
# -------------------------------
# Could decide to send a link or gather the booking details with structured output
def book_sales_demo(name: str) -> None:
    print("Book Sales Demo Called")
    print(
        dedent(f"""
            Hey {name},

            Please book a demo call using this link: https://calendly....

            Cheers Quinn
        """)
    )


# Could use RAG search to get relevant info from the documentation
def search_documentation(query: str) -> None:
    print("Search Documentation Called")
    print(f'Searching for "{query}"')


def bug_found(bug: str) -> None:
    print("Bug Found Called")
    print(f'Bug: "{bug}"')
    print("Created ticket and alerted the IT staff")


def forward_to_human(message: str) -> None:
    print("Forward To Human Called")
    print(f'Message: "{message}"')
    print("Message was forwarded to support staff")


# Mapping from tool name to implementation
TOOL_IMPLS: Dict[str, Callable[..., Any]] = {
    "bookSalesDemo": book_sales_demo,
    "searchDocumentation": search_documentation,
    "bugFound": bug_found,
    "forwardToHuman": forward_to_human,
}


def tool_names(tools: Iterable[Mapping[str, Any]]) -> List[str]:
    return [tool["function"]["name"] for tool in tools]


def validate_catalog(tools: Iterable[Mapping[str, Any]], handlers: Mapping[str, Any]) -> None:
    """Fail unless every declared tool has a handler and every handler is declared."""
    declared = tool_names(tools)
    duplicates = sorted({name for name in declared if declared.count(name) > 1})
    if duplicates:
        raise ValueError(f"Duplicate tool names in catalog: {', '.join(duplicates)}")
    missing = sorted(set(declared) - set(handlers))
    undeclared = sorted(set(handlers) - set(declared))
    if missing or undeclared:
        raise CatalogMismatchError(missing, undeclared)


# -------------------------------
# Generic **kwargs adapter
# -------------------------------
def bind_arguments(name: str, impl: Callable[..., Any], args: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only args that match the handler's signature; all required ones must be present."""
    sig = inspect.signature(impl)
    bound: Dict[str, Any] = {}
    takes_var_kwargs = False
    for param_name, param in sig.parameters.items():
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            takes_var_kwargs = True
            continue
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            continue
        if param_name in args:
            bound[param_name] = args[param_name]
        elif param.default is inspect.Parameter.empty:
            raise MalformedArgumentsError(name, args, f"missing required argument {param_name!r}")
    extra = {k: v for k, v in args.items() if k not in bound}
    if takes_var_kwargs:
        bound.update(extra)
    elif extra:
        logger.warning("Dropping arguments %s not accepted by tool %s", sorted(extra), name)
    return bound


def decode_arguments(name: str, raw_args: Any) -> Dict[str, Any]:
    """Decode the JSON argument string of a tool call into a dict."""
    if isinstance(raw_args, dict):
        return raw_args
    if not isinstance(raw_args, str):
        raise MalformedArgumentsError(name, raw_args, "arguments are not a JSON string")
    try:
        args = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise MalformedArgumentsError(name, raw_args, f"invalid JSON ({exc.msg})") from exc
    if not isinstance(args, dict):
        raise MalformedArgumentsError(name, raw_args, "arguments are not a JSON object")
    return args


def first_tool_call(response: Mapping[str, Any]) -> Dict[str, Any]:
    choices = response.get("choices") or []
    message = (choices[0].get("message") or {}) if choices else {}
    tool_calls = message.get("tool_calls") or []
    if not isinstance(tool_calls, list) or not tool_calls:
        raise NoActionSelectedError()
    return tool_calls[0]


@dataclass(frozen=True)
class ToolSelection:
    """The tool the model picked and the decoded arguments it was run with."""

    name: str
    arguments: Dict[str, Any]
    call_id: Optional[str] = None


class ActionDispatcher:
    """Runs the local handler for the tool the model selected.

    The catalog sent to the model and the handler table are checked against
    each other on construction, so drift fails before any request is sent.
    """

    def __init__(
        self,
        tools: Iterable[Mapping[str, Any]] = TOOLS,
        handlers: Optional[Mapping[str, Callable[..., Any]]] = None,
    ) -> None:
        self._tools = tuple(copy.deepcopy(dict(tool)) for tool in tools)
        self._handlers = dict(TOOL_IMPLS if handlers is None else handlers)
        validate_catalog(self._tools, self._handlers)

    @property
    def tools(self) -> List[Dict[str, Any]]:
        """A fresh copy of the catalog, safe to hand to the SDK."""
        return copy.deepcopy(list(self._tools))

    def dispatch(self, response: Mapping[str, Any]) -> ToolSelection:
        tool_call = first_tool_call(response)
        func_desc = tool_call.get("function") or {}
        name = func_desc.get("name")
        args = decode_arguments(str(name), func_desc.get("arguments"))
        impl = self._handlers.get(name) if isinstance(name, str) else None
        if impl is None:
            raise UnknownActionError(name)
        kwargs = bind_arguments(name, impl, args)
        logger.info("Calling tool %s with filtered args=%s (raw=%s)", name, kwargs, args)
        impl(**kwargs)
        return ToolSelection(name=name, arguments=args, call_id=tool_call.get("id"))


# -------------------------------
# System prompt
# -------------------------------
SYSTEM_PROMPT = dedent("""
    You are an email inbox management AI.
    You work for a SAAS company.
    You will receive emails from customers and decide which tool to call to process their request.
""")

DEFAULT_EMAIL = "How can i use your product with hubspot"


def build_messages(user_message: str, system_prompt: str = SYSTEM_PROMPT) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]


# -------------------------------
# Demo runner
# -------------------------------
def run_demo(
    client: ChatBackend,
    user_message: str = DEFAULT_EMAIL,
    *,
    dispatcher: Optional[ActionDispatcher] = None,
    settings: Optional[Settings] = None,
    cancel: Optional[CancelToken] = None,
) -> ToolSelection:
    """Send one email to the model, forcing a tool call, and run the chosen handler."""
    settings = settings or Settings()
    dispatcher = dispatcher or ActionDispatcher()
    logger.info("Starting demo with user message: %s", user_message)
    request = CompletionRequest(
        model=settings.model,
        messages=build_messages(user_message),
        tools=dispatcher.tools,
        tool_choice="required",
        temperature=0,
    )
    response = client.submit(request, cancel=cancel)
    selection = dispatcher.dispatch(response)
    logger.info("Dispatched email to %s", selection.name)
    return selection
