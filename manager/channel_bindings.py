"""
Account -> agent routing ("bindings") in every shape openclaw.json has used.

    array    [{"agentId": "main", "match": {"channel": "telegram", "accountId": "default"}}]
    flat     {"telegram/default": "main"}            (":" and "." also accepted on read)
    grouped  {"telegram": {"default": "main"}}
             {"telegram": {"default": {"agentId": "main", ...}}}

Whatever shape a document already uses is the shape it is written back in.
Unknown fields on array entries and object-form grouped entries are carried
over for pairs that survive a rewrite, and entries that could not be parsed
are written back untouched instead of being dropped.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

BindingKey = tuple[str, str]  # (channel, accountId)

FLAT_SEPARATORS = ("/", ":", ".")


class BindingShape(str, Enum):
    ARRAY = "array"
    FLAT = "flat"
    GROUPED = "grouped"


def detect_shape(raw: Any) -> BindingShape:
    """Shape a bindings value will be rendered in."""
    if not isinstance(raw, dict):
        return BindingShape.ARRAY
    if all(isinstance(v, str) for v in raw.values()):
        return BindingShape.FLAT
    return BindingShape.GROUPED


def _split_flat_key(key: str) -> Optional[BindingKey]:
    for sep in FLAT_SEPARATORS:
        if sep in key:
            channel, _, account_id = key.partition(sep)
            return channel, account_id
    return None


@dataclass
class ParsedBindings:
    shape: BindingShape
    pairs: dict[BindingKey, str] = field(default_factory=dict)
    # Original array entry / grouped object per pair, for round-tripping extra fields
    originals: dict[BindingKey, dict] = field(default_factory=dict)
    # Array shape: list of raw entries; object shapes: {key: raw value}
    unparsed: Any = None

    @property
    def skipped(self) -> int:
        """Number of entries that could not be interpreted."""
        if not self.unparsed:
            return 0
        if isinstance(self.unparsed, list):
            return len(self.unparsed)
        # Nested leftovers of a channel group are stored as {accountId: value}
        return sum(len(v) if isinstance(v, dict) else 1 for v in self.unparsed.values())

    def for_channel(self, channel: str) -> dict[str, str]:
        """accountId -> agentId for one channel."""
        return {acc: agent for (ch, acc), agent in self.pairs.items() if ch == channel}

    def drop_channel(self, channel: str):
        """Forget every binding, parsed or not, that belongs to channel."""
        self.pairs = {k: v for k, v in self.pairs.items() if k[0] != channel}
        if self.shape == BindingShape.ARRAY:
            self.unparsed = [e for e in self.unparsed if _entry_channel(e) != channel]
        else:
            self.unparsed = {k: v for k, v in self.unparsed.items() if k != channel}

    def set(self, channel: str, account_id: str, agent_id: str):
        self.pairs[(channel, account_id)] = agent_id

    def render(self, pairs: Optional[dict[BindingKey, str]] = None) -> Any:
        """Serialize pairs (default: self.pairs) in this document's shape."""
        if pairs is None:
            pairs = self.pairs
        if self.shape == BindingShape.ARRAY:
            return self._render_array(pairs)
        if self.shape == BindingShape.FLAT:
            return self._render_flat(pairs)
        return self._render_grouped(pairs)

    def _render_array(self, pairs: dict[BindingKey, str]) -> list:
        entries = []
        for (channel, account_id), agent_id in pairs.items():
            entry = copy.deepcopy(self.originals.get((channel, account_id), {}))
            match = entry.get("match")
            if not isinstance(match, dict):
                match = {}
            match["channel"] = channel
            match["accountId"] = account_id
            entry["agentId"] = agent_id
            entry["match"] = match
            entries.append(entry)
        entries.extend(copy.deepcopy(self.unparsed or []))
        return entries

    def _render_flat(self, pairs: dict[BindingKey, str]) -> dict:
        flat = {f"{channel}/{account_id}": agent_id for (channel, account_id), agent_id in pairs.items()}
        for key, value in (self.unparsed or {}).items():
            flat.setdefault(key, value)
        return flat

    def _render_grouped(self, pairs: dict[BindingKey, str]) -> dict:
        grouped: dict[str, dict] = {}
        for (channel, account_id), agent_id in pairs.items():
            original = self.originals.get((channel, account_id))
            if original is not None:
                value = copy.deepcopy(original)
                value["agentId"] = agent_id
            else:
                value = agent_id
            grouped.setdefault(channel, {})[account_id] = value
        for key, value in (self.unparsed or {}).items():
            if key not in grouped:
                grouped[key] = copy.deepcopy(value)
            elif isinstance(value, dict):
                for account_id, nested in value.items():
                    grouped[key].setdefault(account_id, copy.deepcopy(nested))
        return grouped


def _entry_channel(entry: Any) -> Optional[str]:
    if isinstance(entry, dict) and isinstance(entry.get("match"), dict):
        channel = entry["match"].get("channel")
        if isinstance(channel, str):
            return channel
    return None


def _parse_array(raw: list, parsed: ParsedBindings):
    parsed.unparsed = []
    for item in raw:
        agent_id = item.get("agentId") if isinstance(item, dict) else None
        match = item.get("match") if isinstance(item, dict) else None
        channel = match.get("channel") if isinstance(match, dict) else None
        account_id = match.get("accountId") if isinstance(match, dict) else None
        if not all(isinstance(v, str) for v in (agent_id, channel, account_id)):
            parsed.unparsed.append(item)
            continue
        key = (channel, account_id)
        parsed.pairs[key] = agent_id
        parsed.originals[key] = item


def _parse_object(raw: dict, parsed: ParsedBindings):
    parsed.unparsed = {}
    for key, value in raw.items():
        if isinstance(value, str):
            split = _split_flat_key(key)
            if split:
                parsed.pairs[split] = value
                continue

        if not isinstance(value, dict):
            parsed.unparsed[key] = value
            continue

        for account_id, nested in value.items():
            if isinstance(nested, str):
                parsed.pairs[(key, account_id)] = nested
            elif isinstance(nested, dict) and isinstance(nested.get("agentId"), str):
                parsed.pairs[(key, account_id)] = nested["agentId"]
                parsed.originals[(key, account_id)] = nested
            else:
                parsed.unparsed.setdefault(key, {})[account_id] = nested


def parse_bindings(raw: Any) -> ParsedBindings:
    """Interpret a bindings value of any supported shape."""
    parsed = ParsedBindings(shape=detect_shape(raw))
    if isinstance(raw, list):
        _parse_array(raw, parsed)
    elif isinstance(raw, dict):
        _parse_object(raw, parsed)
    else:
        parsed.unparsed = []
    return parsed


def render_bindings(original_raw: Any, pairs: dict[BindingKey, str]) -> Any:
    """Render pairs in the shape of original_raw."""
    return parse_bindings(original_raw).render(pairs)
