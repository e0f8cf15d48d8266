"""
Per-channel pre-hooks and post-hooks

Some sources need bespoke handling: titles that should be reformatted
before files are matched, or uploads that should never be fetched. These
are expressed as hooks registered against a channel key:

- pre-hooks run before the diff and may only rename entries of the video map
- post-hooks run after the diff and may only filter, by blocking ids

Renaming before filtering is required because file matching depends on
titles being final. Hooks are plain callables with the signature
fn(leaf, video_map, state) -> None and work by mutating their arguments.

The macro factories below build the common hooks; HookRegistry.from_config
wires them from the 'hooks' section of the channel document:

    hooks:
      SOME_ARTIST:
        pre:
          - remove: " (Official Video)"
          - regexReplace: {search: "^Some Artist - ", replace: ""}
        post:
          - contains: ["live", "teaser"]
          - dateBefore: "2015-01-01"
"""

import re
from collections import OrderedDict, defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..channel.models import LocalItem
from ..exceptions import ConfigurationError, HookError
from ..utils.helpers import format_identifier, parse_date
from ..utils.logger import get_logger


logger = get_logger(__name__)

Hook = Callable[[Any, "OrderedDict[str, LocalItem]", Any], None]

DEFAULT_DATE_FORMAT = '%Y-%m-%d'


class HookRegistry:
    """Maps a channel key to its ordered pre-hooks and post-hooks"""

    def __init__(self):
        self._pre: Dict[str, List[Hook]] = defaultdict(list)
        self._post: Dict[str, List[Hook]] = defaultdict(list)

    def register_pre(self, key: str, hook: Hook) -> None:
        self._pre[format_identifier(key)].append(hook)

    def register_post(self, key: str, hook: Hook) -> None:
        self._post[format_identifier(key)].append(hook)

    def pre(self, key: str) -> Callable[[Hook], Hook]:
        """Decorator form of register_pre"""
        def decorator(hook: Hook) -> Hook:
            self.register_pre(key, hook)
            return hook
        return decorator

    def post(self, key: str) -> Callable[[Hook], Hook]:
        """Decorator form of register_post"""
        def decorator(hook: Hook) -> Hook:
            self.register_post(key, hook)
            return hook
        return decorator

    def run_pre(self, leaf, video_map, state) -> None:
        for hook in self._pre.get(leaf.key, ()):
            logger.debug(f"Running pre-hook {_hook_name(hook)} for {leaf.key}")
            hook(leaf, video_map, state)

    def run_post(self, leaf, video_map, state) -> None:
        for hook in self._post.get(leaf.key, ()):
            logger.debug(f"Running post-hook {_hook_name(hook)} for {leaf.key}")
            hook(leaf, video_map, state)

    def has_hooks(self, key: str) -> bool:
        return bool(self._pre.get(key) or self._post.get(key))

    def keys(self) -> List[str]:
        return sorted(set(self._pre) | set(self._post))

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "HookRegistry":
        """
        Build a registry from the channel document 'hooks' section

        Args:
            config: {KEY: {pre: [{op: args}], post: [{op: args}]}}. Op names
                may be camelCase or snake_case; args are either a mapping of
                keyword arguments or a single positional value.

        Returns:
            Populated HookRegistry

        Raises:
            ConfigurationError: On an unknown op, an op in the wrong phase or bad arguments
        """
        registry = cls()
        for key, phases in (config or {}).items():
            if not isinstance(phases, dict):
                raise ConfigurationError(f"Hooks of {key} must be a mapping with 'pre' and/or 'post'")
            for phase in phases:
                if phase not in ('pre', 'post'):
                    raise ConfigurationError(f"Unknown hook phase '{phase}' for {key}")

            for entry in phases.get('pre') or []:
                registry.register_pre(key, _build_hook(key, 'pre', entry))
            for entry in phases.get('post') or []:
                registry.register_post(key, _build_hook(key, 'post', entry))

        return registry


def _hook_name(hook: Hook) -> str:
    return getattr(hook, '__name__', repr(hook))


def _snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def _build_hook(key: str, phase: str, entry: Any) -> Hook:
    if isinstance(entry, str):
        entry = {entry: None}
    if not isinstance(entry, dict) or len(entry) != 1:
        raise ConfigurationError(f"Hook entry of {key} must be a single '{{op: args}}' mapping, got: {entry!r}")

    op, args = next(iter(entry.items()))
    name = _snake_case(str(op))
    if name not in RENAME_MACROS and name not in FILTER_MACROS:
        raise ConfigurationError(f"Unknown hook operation '{op}' for {key}", details={'key': key, 'op': op})
    if phase == 'pre' and name not in RENAME_MACROS:
        raise ConfigurationError(f"'{op}' filters entries and can only be a post-hook ({key})")
    if phase == 'post' and name not in FILTER_MACROS:
        raise ConfigurationError(f"'{op}' renames entries and can only be a pre-hook ({key})")

    factory = RENAME_MACROS.get(name) or FILTER_MACROS[name]
    try:
        if isinstance(args, dict):
            return factory(**{_snake_case(k): v for k, v in args.items()})
        if args is None:
            return factory()
        return factory(args)
    except (TypeError, ValueError, re.error) as e:
        raise ConfigurationError(f"Invalid arguments for hook '{op}' of {key}: {e}",
                                 details={'key': key, 'op': op, 'args': args}) from e


# ---------------------------------------------------------------------------
# Title variables
# ---------------------------------------------------------------------------

def expand_variables(title: str, item: LocalItem, index: Optional[int] = None,
                     date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """
    Replace $i (1-based position), $id (content id) and $d (publish date) in a title

    Unknown values expand to an empty string.
    """
    published = parse_date(item.published_at)
    values = {
        'id': item.id,
        'i': str(index) if index is not None else '',
        'd': published.strftime(date_format) if published else '',
    }
    for name in ('id', 'i', 'd'):
        title = re.sub(r'\$' + name + r'\b', lambda _, value=values[name]: value, title, flags=re.IGNORECASE)
    return title


def _rename(function: Callable[[LocalItem, int], str], name: str) -> Hook:
    def hook(leaf, video_map, state):
        for index, item in enumerate(video_map.values(), start=1):
            new_title = function(item, index)
            if new_title != item.title:
                logger.debug(f"Hook {name} retitled {item.id}: '{item.title}' -> '{new_title}'")
                item.update_title(new_title)
    hook.__name__ = name
    return hook


def _as_list(value: Union[str, Sequence[str]]) -> List[str]:
    return [value] if isinstance(value, str) else list(value)


# ---------------------------------------------------------------------------
# Rename macros (pre-hooks)
# ---------------------------------------------------------------------------

def regex_replace(search: str, replace: str = '', ignore_case: bool = False) -> Hook:
    """Replace every match of a regex in each title; the replacement may use \\1 and title variables"""
    pattern = re.compile(search, re.IGNORECASE if ignore_case else 0)
    return _rename(lambda item, index: expand_variables(pattern.sub(replace, item.title), item, index),
                   'regex_replace')


def replace(search: str, replace: str = '', ignore_case: bool = False) -> Hook:
    """Replace every literal occurrence of a string in each title"""
    pattern = re.compile(re.escape(search), re.IGNORECASE if ignore_case else 0)
    return _rename(lambda item, index: expand_variables(pattern.sub(lambda _: replace, item.title), item, index),
                   'replace')


def remove(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    """Remove every literal occurrence of one or more strings from each title"""
    patterns = [re.compile(re.escape(s), re.IGNORECASE if ignore_case else 0) for s in _as_list(search)]

    def strip(item: LocalItem, index: int) -> str:
        title = item.title
        for pattern in patterns:
            title = pattern.sub('', title)
        return title
    return _rename(strip, 'remove')


def regex_remove(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    """Remove every match of one or more regexes from each title"""
    patterns = [re.compile(s, re.IGNORECASE if ignore_case else 0) for s in _as_list(search)]

    def strip(item: LocalItem, index: int) -> str:
        title = item.title
        for pattern in patterns:
            title = pattern.sub('', title)
        return title
    return _rename(strip, 'regex_remove')


def append(suffix: str) -> Hook:
    """Append a suffix (title variables allowed) to each title"""
    return _rename(lambda item, index: item.title + expand_variables(suffix, item, index), 'append')


def prepend(prefix: str) -> Hook:
    """Prepend a prefix (title variables allowed) to each title"""
    return _rename(lambda item, index: expand_variables(prefix, item, index) + item.title, 'prepend')


def format_title(pattern: str, result: str, strict: bool = False, ignore_case: bool = False,
                 date_format: str = DEFAULT_DATE_FORMAT) -> Hook:
    """
    Rebuild titles from the named groups of a regex

    Each title must fully match the pattern. The result template refers to
    named groups as $name and may use the title variables $i, $id and $d.
    Titles that do not match are left alone, unless strict is set.

    Example:
        format_title(r'(?P<artist>.+) - (?P<song>.+)', '$song ($artist)')

    Raises:
        HookError: In strict mode, when a title does not match
    """
    regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    group_names = sorted(regex.groupindex, key=len, reverse=True)

    def build(item: LocalItem, index: int) -> str:
        match = regex.fullmatch(item.title)
        if match is None:
            if strict:
                raise HookError(f"Title '{item.title}' does not match the pattern: {pattern}",
                                details={'id': item.id, 'pattern': pattern})
            return item.title

        title = result
        for name in group_names:
            title = re.sub(r'\$' + re.escape(name) + r'\b', lambda _, n=name: match.group(n) or '', title)
        return expand_variables(title, item, index, date_format)

    return _rename(build, 'format_title')


# ---------------------------------------------------------------------------
# Filter macros (post-hooks)
# ---------------------------------------------------------------------------

def _filter(condition: Callable[[LocalItem], bool], negate: bool, name: str) -> Hook:
    def hook(leaf, video_map, state):
        for identifier, item in video_map.items():
            if negate ^ condition(item):
                if identifier not in state.blocked:
                    logger.debug(f"Hook {name} blocked {identifier}: '{item.title}'")
                state.block(identifier)
    hook.__name__ = name
    return hook


def _text_condition(search: Union[str, Sequence[str]], ignore_case: bool,
                    test: Callable[[str, str], bool]) -> Callable[[LocalItem], bool]:
    terms = _as_list(search)
    if ignore_case:
        terms = [term.lower() for term in terms]

    def condition(item: LocalItem) -> bool:
        title = item.title.lower() if ignore_case else item.title
        return any(test(title, term) for term in terms)
    return condition


def contains(search: Union[str, Sequence[str]], ignore_case: bool = False, negate: bool = False) -> Hook:
    """Block items whose title contains any of the strings"""
    return _filter(_text_condition(search, ignore_case, lambda title, term: term in title), negate, 'contains')


def not_contains(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    """Block items whose title contains none of the strings"""
    return contains(search, ignore_case, negate=True)


def regex_contains(search: Union[str, Sequence[str]], ignore_case: bool = False, negate: bool = False) -> Hook:
    """Block items whose title matches any of the regexes anywhere"""
    patterns = [re.compile(s, re.IGNORECASE if ignore_case else 0) for s in _as_list(search)]
    return _filter(lambda item: any(p.search(item.title) for p in patterns), negate, 'regex_contains')


def regex_not_contains(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    return regex_contains(search, ignore_case, negate=True)


def starts_with(search: Union[str, Sequence[str]], ignore_case: bool = False, negate: bool = False) -> Hook:
    """Block items whose title starts with any of the strings"""
    return _filter(_text_condition(search, ignore_case, lambda title, term: title.startswith(term)),
                   negate, 'starts_with')


def not_starts_with(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    return starts_with(search, ignore_case, negate=True)


def ends_with(search: Union[str, Sequence[str]], ignore_case: bool = False, negate: bool = False) -> Hook:
    """Block items whose title ends with any of the strings"""
    return _filter(_text_condition(search, ignore_case, lambda title, term: title.endswith(term)),
                   negate, 'ends_with')


def not_ends_with(search: Union[str, Sequence[str]], ignore_case: bool = False) -> Hook:
    return ends_with(search, ignore_case, negate=True)


def _as_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.replace(tzinfo=None)


def _date_filter(test: Callable[[datetime], bool], negate: bool, name: str) -> Hook:
    def condition(item: LocalItem) -> bool:
        published = parse_date(item.published_at)
        return published is not None and test(published.replace(tzinfo=None))
    return _filter(condition, negate, name)


def date_before(date: Any, negate: bool = False) -> Hook:
    """Block items published before a date (items without a date are kept)"""
    limit = _as_date(date)
    return _date_filter(lambda published: published < limit, negate, 'date_before')


def date_after(date: Any, negate: bool = False) -> Hook:
    """Block items published after a date (items without a date are kept)"""
    limit = _as_date(date)
    return _date_filter(lambda published: published > limit, negate, 'date_after')


def date_between(start: Any, end: Any, negate: bool = False) -> Hook:
    """Block items published strictly between two dates (both bounds excluded)"""
    lower, upper = _as_date(start), _as_date(end)
    return _date_filter(lambda published: lower < published < upper, negate, 'date_between')


RENAME_MACROS: Dict[str, Callable[..., Hook]] = {
    'replace': replace,
    'regex_replace': regex_replace,
    'remove': remove,
    'regex_remove': regex_remove,
    'append': append,
    'prepend': prepend,
    'format_title': format_title,
    'format': format_title,
}

FILTER_MACROS: Dict[str, Callable[..., Hook]] = {
    'contains': contains,
    'not_contains': not_contains,
    'regex_contains': regex_contains,
    'regex_not_contains': regex_not_contains,
    'starts_with': starts_with,
    'not_starts_with': not_starts_with,
    'ends_with': ends_with,
    'not_ends_with': not_ends_with,
    'date_before': date_before,
    'date_after': date_after,
    'date_between': date_between,
}
