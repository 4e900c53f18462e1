"""
Bindings parsing and shape-preserving rendering.
"""

from channel_bindings import BindingShape, detect_shape, parse_bindings, render_bindings


class TestDetectShape:
    def test_shapes(self):
        assert detect_shape([]) == BindingShape.ARRAY
        assert detect_shape(None) == BindingShape.ARRAY
        assert detect_shape("junk") == BindingShape.ARRAY
        assert detect_shape({}) == BindingShape.FLAT
        assert detect_shape({"telegram/default": "main"}) == BindingShape.FLAT
        assert detect_shape({"telegram": {"default": "main"}}) == BindingShape.GROUPED


class TestParseArray:
    def test_valid_entries(self):
        raw = [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "default"}},
            {"agentId": "work", "match": {"channel": "discord", "accountId": "acc1"}},
        ]
        parsed = parse_bindings(raw)
        assert parsed.shape == BindingShape.ARRAY
        assert parsed.pairs == {("telegram", "default"): "main", ("discord", "acc1"): "work"}
        assert parsed.skipped == 0

    def test_malformed_entries_skipped_and_counted(self):
        """Bad entries do not fail the parse."""
        raw = [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "default"}},
            {"agentId": "x"},
            {"agentId": 5, "match": {"channel": "slack", "accountId": "a"}},
            "not an object",
        ]
        parsed = parse_bindings(raw)
        assert parsed.pairs == {("telegram", "default"): "main"}
        assert parsed.skipped == 3

    def test_last_duplicate_wins(self):
        raw = [
            {"agentId": "first", "match": {"channel": "telegram", "accountId": "default"}},
            {"agentId": "second", "match": {"channel": "telegram", "accountId": "default"}},
        ]
        assert parse_bindings(raw).pairs == {("telegram", "default"): "second"}


class TestParseObject:
    def test_flat_separators(self):
        """/ then : then . split a flat key."""
        raw = {"telegram/default": "a", "discord:acc1": "b", "slack.team": "c"}
        assert parse_bindings(raw).pairs == {
            ("telegram", "default"): "a",
            ("discord", "acc1"): "b",
            ("slack", "team"): "c",
        }

    def test_separator_priority(self):
        """A key containing several separators splits on the first kind that matches."""
        assert parse_bindings({"feishu/a:b": "x"}).pairs == {("feishu", "a:b"): "x"}

    def test_flat_key_without_separator_skipped(self):
        parsed = parse_bindings({"nosep": "main", "telegram/default": "main"})
        assert parsed.pairs == {("telegram", "default"): "main"}
        assert parsed.skipped == 1

    def test_grouped_strings_and_objects(self):
        raw = {
            "telegram": {"default": "main", "work": {"agentId": "coder", "note": "x"}},
            "discord": {"bad": {"noAgent": True}},
        }
        parsed = parse_bindings(raw)
        assert parsed.shape == BindingShape.GROUPED
        assert parsed.pairs == {("telegram", "default"): "main", ("telegram", "work"): "coder"}
        assert parsed.skipped == 1

    def test_scalar_is_empty(self):
        parsed = parse_bindings(42)
        assert parsed.pairs == {}
        assert parsed.shape == BindingShape.ARRAY


class TestRender:
    def test_flat_round_trip(self):
        raw = {"telegram/default": "main"}
        assert render_bindings(raw, parse_bindings(raw).pairs) == {"telegram/default": "main"}

    def test_flat_always_renders_slash(self):
        raw = {"telegram:default": "main"}
        assert render_bindings(raw, parse_bindings(raw).pairs) == {"telegram/default": "main"}

    def test_empty_array_stays_array(self):
        """An empty array original still renders as the array shape."""
        assert render_bindings([], {("discord", "acc1"): "agentX"}) == [
            {"agentId": "agentX", "match": {"channel": "discord", "accountId": "acc1"}}
        ]

    def test_missing_bindings_render_as_array(self):
        assert render_bindings(None, {("telegram", "a"): "main"}) == [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}}
        ]

    def test_grouped_round_trip(self):
        raw = {"telegram": {"default": "main"}, "discord": {"acc1": "work"}}
        assert render_bindings(raw, parse_bindings(raw).pairs) == raw

    def test_array_extra_fields_carried_over(self):
        """Unknown fields on surviving entries are kept."""
        raw = [{"agentId": "main", "priority": 3, "match": {"channel": "telegram", "accountId": "a", "peer": "x"}}]
        parsed = parse_bindings(raw)
        parsed.set("telegram", "a", "other")
        assert parsed.render() == [
            {"agentId": "other", "priority": 3, "match": {"channel": "telegram", "accountId": "a", "peer": "x"}}
        ]

    def test_grouped_object_entries_keep_extra_fields(self):
        raw = {"telegram": {"a": {"agentId": "main", "note": "keep"}}}
        parsed = parse_bindings(raw)
        parsed.set("telegram", "a", "other")
        assert parsed.render() == {"telegram": {"a": {"agentId": "other", "note": "keep"}}}

    def test_unparsed_entries_reemitted(self):
        """Entries that could not be parsed are written back untouched."""
        raw = [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}},
            {"agentId": "peer-route", "match": {"peer": {"kind": "dm"}}},
        ]
        assert parse_bindings(raw).render() == raw

    def test_drop_channel(self):
        raw = [
            {"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}},
            {"agentId": "main", "match": {"channel": "discord", "accountId": "b"}},
            {"agentId": 1, "match": {"channel": "telegram"}},
        ]
        parsed = parse_bindings(raw)
        parsed.drop_channel("telegram")
        assert parsed.render() == [{"agentId": "main", "match": {"channel": "discord", "accountId": "b"}}]

    def test_render_is_pure(self):
        raw = [{"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}}]
        pairs = {("telegram", "a"): "x"}
        first = render_bindings(raw, pairs)
        assert render_bindings(raw, pairs) == first
        assert raw == [{"agentId": "main", "match": {"channel": "telegram", "accountId": "a"}}]
