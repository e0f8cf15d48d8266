"""
Channel configuration tree: parsing, resolution and selection

The channel document describes a hierarchy of groups and channels. A group
bundles channels (and nested groups) and supplies default settings; a
channel (leaf) is bound to one remote list. Settings left unset on a node
are inherited from the nearest ancestor that sets them, while 'active' is
AND-composed: an inactive group deactivates everything below it.

The tree is immutable once loaded. A single depth-first pass turns it into
a flat, ordered list of ResolvedLeaf objects carrying fully materialized
settings, so the rest of the engine never looks at the hierarchy again.

Document example (YAML):

    channels:
      - key: MUSIC
        saveAsMp3: true
        outputFolder: Music Videos
        channels:
          - key: SOME_ARTIST
            playlistId: PLxxxxxxxx
            outputFolder: ~ - Some Artist
            savePlaylist: true
"""

import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

from .models import ChannelType
from .sponsorblock import PolicyScope, SegmentSkipPolicy
from ..exceptions import ConfigurationError
from ..utils.helpers import PLAYLIST_FORMAT, clean_file_path, format_identifier, key_to_name
from ..utils.logger import get_logger
from ..utils.validation import validate_remote_list_id


logger = get_logger(__name__)

CHILDREN_KEY = 'channels'

# Placeholders substituted with the global location roots
STORAGE_PLACEHOLDER = '${D}'
VIDEO_PLACEHOLDER = '${V}'
MUSIC_PLACEHOLDER = '${M}'


@dataclass(frozen=True)
class NodeSettings:
    """
    Inheritable settings of a node

    Every field is optional; None means "not set here, inherit it".
    Path fields hold the cleaned string exactly as written so that the '~'
    token can be expanded during resolution.
    """
    name: Optional[str] = None
    group_tags: Optional[FrozenSet[str]] = None
    url: Optional[str] = None
    remote_list_id: Optional[str] = None
    output_folder: Optional[str] = None
    playlist_file: Optional[str] = None
    save_as_audio: Optional[bool] = None
    save_playlist: Optional[bool] = None
    reverse_playlist: Optional[bool] = None
    ignore_global_locations: Optional[bool] = None
    keep_clean: Optional[bool] = None
    segment_skip_policy: Optional[SegmentSkipPolicy] = None

    def merged_over(self, parent: "NodeSettings") -> "NodeSettings":
        """Return settings where this node's explicit fields override the parent's"""
        values = {}
        for item in fields(self):
            own = getattr(self, item.name)
            values[item.name] = own if own is not None else getattr(parent, item.name)
        return NodeSettings(**values)


@dataclass(frozen=True)
class Leaf:
    """A channel bound to one remote list"""
    key: str
    active: bool = True
    settings: NodeSettings = field(default_factory=NodeSettings)


@dataclass(frozen=True)
class Group:
    """A node bundling channels and nested groups under shared defaults"""
    key: str
    active: bool = True
    settings: NodeSettings = field(default_factory=NodeSettings)
    children: Tuple[Union["Group", Leaf], ...] = ()


ConfigNode = Union[Group, Leaf]


@dataclass(frozen=True)
class ConfigTree:
    """
    Parsed channel document

    Attributes:
        roots: Top-level nodes in document order
        hooks: Raw hook configuration keyed by channel key
    """
    roots: Tuple[ConfigNode, ...] = ()
    hooks: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def walk(self) -> Iterator[Tuple[ConfigNode, int, bool]]:
        """
        Iterate over every node depth-first

        Yields:
            Tuples of (node, depth, resolved active flag)
        """
        def visit(node: ConfigNode, depth: int, parent_active: bool):
            active = node.active and parent_active
            yield node, depth, active
            if isinstance(node, Group):
                for child in node.children:
                    yield from visit(child, depth + 1, active)

        for root in self.roots:
            yield from visit(root, 0, True)

    def keys(self) -> List[str]:
        return [node.key for node, _, _ in self.walk()]


@dataclass(frozen=True)
class GlobalLocations:
    """The three global roots: storage drive, video directory and music directory"""
    storage: Path
    video: Path
    music: Path

    @classmethod
    def from_settings(cls, settings) -> "GlobalLocations":
        roots = settings.get_global_locations()
        return cls(storage=roots['storage'], video=roots['video'], music=roots['music'])

    @classmethod
    def default(cls) -> "GlobalLocations":
        home = Path.home()
        return cls(storage=home, video=home / "Videos", music=home / "Music")

    def substitute(self, path: str) -> str:
        return (path.replace(STORAGE_PLACEHOLDER, str(self.storage))
                .replace(VIDEO_PLACEHOLDER, str(self.video))
                .replace(MUSIC_PLACEHOLDER, str(self.music)))


@dataclass(frozen=True)
class ResolvedLeaf:
    """
    A channel with fully materialized settings

    Attributes:
        key: Unique channel key
        index: Position of the channel in document order
        active: Own flag AND every ancestor's flag
        ancestors: Keys of the enclosing groups, outermost first
        memberships: Key, tags and ancestor keys/tags used for group selection
        error: Why the channel cannot be processed, None when it can
    """
    key: str
    index: int
    name: str
    active: bool
    ancestors: Tuple[str, ...]
    memberships: FrozenSet[str]
    group_tags: FrozenSet[str]
    url: Optional[str]
    remote_list_id: Optional[str]
    output_folder: Optional[Path]
    playlist_file: Optional[Path]
    save_as_audio: bool
    save_playlist: bool
    reverse_playlist: bool
    ignore_global_locations: bool
    keep_clean: bool
    segment_skip_policy: Optional[SegmentSkipPolicy] = None
    error: Optional[str] = None

    @property
    def channel_type(self) -> Optional[ChannelType]:
        return ChannelType.determine(self.remote_list_id)

    @property
    def is_channel(self) -> bool:
        """True when the remote list is a channel uploads list"""
        return self.channel_type is ChannelType.CHANNEL

    @property
    def is_processable(self) -> bool:
        return self.active and self.error is None

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.key})" if self.name != key_to_name(self.key) else self.name

    def is_member_of_group(self, group_name: Optional[str]) -> bool:
        """
        Check membership of a group by key or tag

        Names are compared lowercased, without non-alphanumerics and without
        a trailing 's', so 'Music Videos' matches the key MUSIC_VIDEO.
        """
        if not group_name or not group_name.strip():
            return True
        return normalize_group_name(group_name) in self.memberships

    def effective_config(self) -> Dict[str, Any]:
        """Effective settings in document field names, for display"""
        policy = self.segment_skip_policy
        return {
            'key': self.key,
            'active': self.active,
            'name': self.name,
            'group': ', '.join(sorted(self.group_tags)) or None,
            'url': self.url,
            'playlistId': self.remote_list_id,
            'outputFolder': str(self.output_folder) if self.output_folder else None,
            'playlistFile': str(self.playlist_file) if self.playlist_file else None,
            'saveAsMp3': self.save_as_audio,
            'savePlaylist': self.save_playlist,
            'reversePlaylist': self.reverse_playlist,
            'ignoreGlobalLocations': self.ignore_global_locations,
            'keepClean': self.keep_clean,
            'sponsorBlock': ', '.join(policy.categories) if policy and policy.is_active else None,
        }


def normalize_group_name(name: str) -> str:
    name = re.sub(r'[^a-z0-9]', '', name.lower())
    return re.sub(r's$', '', name)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def load_tree(path: Union[str, Path]) -> ConfigTree:
    """
    Load a channel document from disk

    Args:
        path: YAML (or JSON) channel document

    Returns:
        Parsed ConfigTree

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Channel document not found: {path}", details={'path': str(path)})

    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read channel document {path}: {e}",
                                 details={'path': str(path), 'original_error': e}) from e

    tree = parse_tree(document)
    logger.info(f"Loaded {len(tree.keys())} channel entries from {path}")
    return tree


def parse_tree(document: Any) -> ConfigTree:
    """
    Parse a channel document

    The document is either a list of nodes or a mapping with a 'channels'
    list and an optional 'hooks' mapping. Keys must be unique across the
    whole tree; this is checked before anything else is done with it.

    Raises:
        ConfigurationError: On a missing or duplicate key or a malformed node
    """
    hooks: Dict[str, Any] = {}
    if document is None:
        nodes = []
    elif isinstance(document, list):
        nodes = document
    elif isinstance(document, dict):
        nodes = document.get(CHILDREN_KEY) or []
        hooks = document.get('hooks') or {}
        if not isinstance(hooks, dict):
            raise ConfigurationError("'hooks' must be a mapping of channel key to hook lists")
    else:
        raise ConfigurationError("Channel document must be a list of channels or a mapping with 'channels'")

    if not isinstance(nodes, list):
        raise ConfigurationError("'channels' must be a list")

    seen: Dict[str, int] = {}
    roots = tuple(_parse_node(node, seen) for node in nodes)
    return ConfigTree(roots=roots, hooks={format_identifier(str(k)): v for k, v in hooks.items()})


def _parse_node(data: Any, seen: Dict[str, int]) -> ConfigNode:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Channel entry must be a mapping, got: {data!r}")

    raw_key = data.get('key')
    if raw_key is None or not str(raw_key).strip():
        raise ConfigurationError("Configuration missing required field: key", details={'entry': data})

    key = format_identifier(str(raw_key))
    if key in seen:
        raise ConfigurationError(f"Duplicate channel key: {key}", details={'key': key})
    seen[key] = len(seen)

    active = _parse_bool(data, 'active', key)
    node_settings = _parse_settings(data, key)

    if CHILDREN_KEY in data:
        children = data.get(CHILDREN_KEY) or []
        if not isinstance(children, list):
            raise ConfigurationError(f"'{CHILDREN_KEY}' of group {key} must be a list", details={'key': key})
        return Group(
            key=key,
            active=True if active is None else active,
            settings=node_settings,
            children=tuple(_parse_node(child, seen) for child in children),
        )

    return Leaf(key=key, active=True if active is None else active, settings=node_settings)


def _parse_settings(data: Dict[str, Any], key: str) -> NodeSettings:
    remote_list_id = _parse_str(data, 'playlistId') or _parse_str(data, 'remoteListId')
    if remote_list_id:
        remote_list_id = re.sub(r'^UC', 'UU', remote_list_id)

    save_as_audio = _parse_bool(data, 'saveAsMp3', key)
    if save_as_audio is None:
        save_as_audio = _parse_bool(data, 'saveAsAudio', key)

    output_folder = _parse_str(data, 'outputFolder')
    playlist_file = _parse_str(data, 'playlistFile')

    policy_data = data.get('sponsorBlock')
    return NodeSettings(
        name=_parse_str(data, 'name'),
        group_tags=_parse_tags(data.get('group')),
        url=_parse_str(data, 'url') or determine_url(remote_list_id),
        remote_list_id=remote_list_id,
        output_folder=clean_file_path(output_folder) if output_folder else None,
        playlist_file=clean_file_path(playlist_file) if playlist_file else None,
        save_as_audio=save_as_audio,
        save_playlist=_parse_bool(data, 'savePlaylist', key),
        reverse_playlist=_parse_bool(data, 'reversePlaylist', key),
        ignore_global_locations=_parse_bool(data, 'ignoreGlobalLocations', key),
        keep_clean=_parse_bool(data, 'keepClean', key),
        segment_skip_policy=SegmentSkipPolicy.from_config(policy_data, PolicyScope.LOCAL),
    )


def _parse_str(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_bool(data: Dict[str, Any], name: str, key: str) -> Optional[bool]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigurationError(f"Field '{name}' of {key} must be true or false, got: {value!r}",
                                 details={'key': key, 'field': name})
    return value


def _parse_tags(value: Any) -> Optional[FrozenSet[str]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        parts = re.split(r'\s*[,|]\s*', str(value))
    tags = frozenset(part.strip() for part in parts if part and part.strip())
    return tags or None


def determine_url(remote_list_id: Optional[str]) -> Optional[str]:
    """
    Build the browser URL of a remote list

    Channel uploads lists link to the channel page, playlists and albums to
    the playlist page.
    """
    channel_type = ChannelType.determine(remote_list_id)
    if channel_type is ChannelType.CHANNEL:
        return "https://www.youtube.com/channel/" + re.sub(r'^UU', 'UC', remote_list_id)
    if channel_type in (ChannelType.PLAYLIST, ChannelType.ALBUM):
        return f"https://www.youtube.com/playlist?list={remote_list_id}"
    return None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _Scope:
    settings: NodeSettings
    folder: Optional[str]
    active: bool
    ancestors: Tuple[str, ...]
    memberships: FrozenSet[str]


def resolve(tree: ConfigTree, locations: Optional[GlobalLocations] = None) -> List[ResolvedLeaf]:
    """
    Resolve every channel of the tree in one depth-first pass

    Args:
        tree: Parsed channel tree
        locations: Global location roots, defaults to the home directory layout

    Returns:
        One ResolvedLeaf per channel, in document order. Channels that cannot
        be processed (missing remote list id or output folder, relative path
        with ignoreGlobalLocations) carry an error instead of raising.
    """
    locations = locations or GlobalLocations.default()
    resolved: List[ResolvedLeaf] = []
    root_scope = _Scope(NodeSettings(), None, True, (), frozenset())

    def visit(node: ConfigNode, scope: _Scope) -> None:
        node_scope = _enter(node, scope, locations)
        if isinstance(node, Group):
            for child in node.children:
                visit(child, node_scope)
        else:
            resolved.append(_materialize(node, node_scope, len(resolved), locations))

    for root in tree.roots:
        visit(root, root_scope)

    for leaf in resolved:
        if leaf.error and leaf.active:
            logger.warning(f"Channel {leaf.key} will be skipped: {leaf.error}")
    return resolved


def _enter(node: ConfigNode, scope: _Scope, locations: GlobalLocations) -> _Scope:
    own = node.settings
    merged = own.merged_over(scope.settings)

    folder = scope.folder
    if own.output_folder is not None:
        own_folder = locations.substitute(own.output_folder)
        folder = (scope.folder or '') + own_folder[1:] if own_folder.startswith('~') else own_folder

    memberships = set(scope.memberships)
    memberships.add(normalize_group_name(node.key))
    memberships.update(normalize_group_name(tag) for tag in (own.group_tags or ()))

    ancestors = scope.ancestors + ((node.key,) if isinstance(node, Group) else ())
    return _Scope(merged, folder, node.active and scope.active, ancestors, frozenset(memberships))


def _materialize(leaf: Leaf, scope: _Scope, index: int, locations: GlobalLocations) -> ResolvedLeaf:
    effective = scope.settings
    save_as_audio = bool(effective.save_as_audio)
    ignore_global = bool(effective.ignore_global_locations)
    errors = []

    if not effective.remote_list_id:
        errors.append("missing remoteListId (playlistId)")
    else:
        is_valid, error = validate_remote_list_id(effective.remote_list_id)
        if not is_valid:
            errors.append(error)

    output_folder = None
    if scope.folder:
        output_folder = _to_path(scope.folder, ignore_global, save_as_audio, locations)
        if output_folder is None:
            errors.append(f"outputFolder must be absolute with ignoreGlobalLocations: {scope.folder}")
    else:
        errors.append("missing outputFolder")

    playlist_file = None
    if effective.playlist_file:
        playlist_path = locations.substitute(effective.playlist_file)
        if playlist_path.startswith('~'):
            playlist_path = (scope.folder or '') + playlist_path[1:]
        playlist_path = re.sub(r'(?<=.)(?:\.' + PLAYLIST_FORMAT + r')+$', '.' + PLAYLIST_FORMAT, playlist_path)
        playlist_file = _to_path(playlist_path, ignore_global, save_as_audio, locations)
        if playlist_file is None:
            errors.append(f"playlistFile must be absolute with ignoreGlobalLocations: {playlist_path}")

    save_playlist = effective.save_playlist
    if save_playlist is None:
        save_playlist = effective.playlist_file is not None
    if playlist_file is None and save_playlist and output_folder is not None:
        playlist_file = Path(f"{output_folder}.{PLAYLIST_FORMAT}")

    return ResolvedLeaf(
        key=leaf.key,
        index=index,
        name=effective.name or key_to_name(leaf.key),
        active=scope.active,
        ancestors=scope.ancestors,
        memberships=scope.memberships,
        group_tags=effective.group_tags or frozenset(),
        url=effective.url,
        remote_list_id=effective.remote_list_id,
        output_folder=output_folder,
        playlist_file=playlist_file,
        save_as_audio=save_as_audio,
        save_playlist=bool(save_playlist),
        reverse_playlist=bool(effective.reverse_playlist),
        ignore_global_locations=ignore_global,
        keep_clean=bool(effective.keep_clean),
        segment_skip_policy=effective.segment_skip_policy,
        error='; '.join(errors) or None,
    )


def _to_path(path: str, ignore_global: bool, save_as_audio: bool, locations: GlobalLocations) -> Optional[Path]:
    if ignore_global:
        result = Path(path).expanduser()
        return result if result.is_absolute() else None
    root = locations.music if save_as_audio else locations.video
    return root / path.lstrip('/\\')


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _as_list(value: Union[str, Sequence[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [item for item in value if item and str(item).strip()]


def select_leaves(
    leaves: Sequence[ResolvedLeaf],
    channel: Union[str, Sequence[str], None] = None,
    group: Union[str, Sequence[str], None] = None,
    start_at: Optional[str] = None,
    stop_at: Optional[str] = None,
) -> List[ResolvedLeaf]:
    """
    Select the channels to process in a run

    Args:
        leaves: Resolved channels in document order
        channel: Only these channel keys
        group: Only channels that are a member of any of these groups
        start_at: First channel key of an inclusive window over document order
        stop_at: Last channel key of the window

    Returns:
        Active, error-free channels matching every given filter, in document order

    Raises:
        ConfigurationError: If a channel, start or stop key is not in the tree
    """
    known = {leaf.key: leaf.index for leaf in leaves}
    channels = [format_identifier(key) for key in _as_list(channel)]
    groups = _as_list(group)

    for key in channels + [format_identifier(k) for k in (start_at, stop_at) if k]:
        if key not in known:
            raise ConfigurationError(f"Unknown channel key: {key}", details={'key': key})

    start_index = known[format_identifier(start_at)] if start_at else None
    stop_index = known[format_identifier(stop_at)] if stop_at else None

    selected = []
    for leaf in leaves:
        if not leaf.is_processable:
            continue
        if channels and leaf.key not in channels:
            continue
        if groups and not any(leaf.is_member_of_group(name) for name in groups):
            continue
        if start_index is not None and leaf.index < start_index:
            continue
        if stop_index is not None and leaf.index > stop_index:
            continue
        selected.append(leaf)
    return selected
