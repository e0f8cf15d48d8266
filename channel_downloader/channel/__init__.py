"""
Channel package: the configuration tree and the data it produces

Components:

**tree.py**
- ConfigTree, Group and Leaf: the immutable channel document
- resolve(): one depth-first pass producing ResolvedLeaf objects with every
  inherited setting and path materialized
- select_leaves(): channel, group and start/stop window selection

**models.py**
- RemoteItem / LocalItem: one remote entry and its local file
- DownloadOutcome / DownloadResponse: fetch results
- RunStats: counters reported at the end of a run

**sponsorblock.py**
- SegmentSkipPolicy at global and channel level
- resolve_policy(): precedence between the two
"""

from .models import ChannelType, DownloadOutcome, DownloadResponse, LocalItem, RemoteItem, RemoteListing, RunStats
from .sponsorblock import EffectivePolicy, PolicyScope, SegmentSkipPolicy, resolve_policy
from .tree import (
    ConfigNode,
    ConfigTree,
    GlobalLocations,
    Group,
    Leaf,
    NodeSettings,
    ResolvedLeaf,
    load_tree,
    parse_tree,
    resolve,
    select_leaves,
)

__all__ = [
    'ChannelType',
    'DownloadOutcome',
    'DownloadResponse',
    'LocalItem',
    'RemoteItem',
    'RemoteListing',
    'RunStats',
    'EffectivePolicy',
    'PolicyScope',
    'SegmentSkipPolicy',
    'resolve_policy',
    'ConfigNode',
    'ConfigTree',
    'GlobalLocations',
    'Group',
    'Leaf',
    'NodeSettings',
    'ResolvedLeaf',
    'load_tree',
    'parse_tree',
    'resolve',
    'select_leaves',
]
