"""
Filter System (controller/filters.py)

Tests FilterSpec parsing, restriction matching, FilterChain ordering and
short-circuiting, inline filters and the built-in postOnly / ajaxOnly filters.
"""

import pytest

from halyard.controller import (
    Controller,
    Filter,
    FilterChain,
    FilterSpec,
    InlineFilter,
)
from halyard.faults import ActionConfigFault, BadRequestFault, ForbiddenFault


# ============================================================================
# Filters under test
# ============================================================================

class Recorder(Filter):
    label = ""
    log = None

    def pre_filter(self, chain):
        self.log.append(f"pre:{self.label}")
        return True

    def post_filter(self, chain):
        self.log.append(f"post:{self.label}")


class Blocker(Filter):
    log = None

    async def pre_filter(self, chain):
        self.log.append("blocked")
        return False

    def post_filter(self, chain):
        self.log.append("post:blocker")


class Initialised(Filter):
    ready = False

    def init(self):
        self.ready = True

    def pre_filter(self, chain):
        assert self.ready
        return True


class Passing(Filter):
    pass


class NotAFilter:
    pass


def recording_controller(log, filters):
    class RecordingController(Controller):

        def filters(self):
            return filters

        def action_index(self):
            log.append("action")
            return "done"

        def action_view(self, name="foo"):
            log.append(f"view:{name}")
            return name

        def action_delete(self):
            return "deleted"

    return RecordingController


# ============================================================================
# FilterSpec
# ============================================================================

class TestFilterSpec:

    def test_plain_inline(self):
        spec = FilterSpec.parse("postOnly")
        assert spec.target == "postOnly"
        assert spec.inline is True
        assert spec.mode is None
        assert spec.action_ids == frozenset()

    def test_only_restriction(self):
        spec = FilterSpec.parse("postOnly + delete, Edit")
        assert spec.target == "postOnly"
        assert spec.mode == "+"
        assert spec.action_ids == {"delete", "edit"}

    def test_except_restriction_space_separated(self):
        spec = FilterSpec.parse("accessControl - login logout")
        assert spec.mode == "-"
        assert spec.action_ids == {"login", "logout"}

    def test_applies_to(self):
        only = FilterSpec.parse("postOnly + delete")
        assert only.applies_to("delete")
        assert only.applies_to("DELETE")
        assert not only.applies_to("view")

        excluding = FilterSpec.parse("postOnly - delete")
        assert not excluding.applies_to("Delete")
        assert excluding.applies_to("view")

        everywhere = FilterSpec.parse("postOnly")
        assert everywhere.applies_to("anything")

    def test_tuple_with_options(self):
        spec = FilterSpec.parse((Recorder, {"label": "a"}, {"log": []}))
        assert spec.target is Recorder
        assert spec.inline is False
        assert spec.options == {"label": "a", "log": []}

    def test_tuple_with_dotted_restriction(self):
        spec = FilterSpec.parse(["app.filters.Cache + list", {"duration": 60}])
        assert spec.target == "app.filters.Cache"
        assert spec.mode == "+"
        assert spec.action_ids == {"list"}
        assert spec.options == {"duration": 60}

    def test_mapping(self):
        spec = FilterSpec.parse({"class": "app.filters.Throttle - health", "limit": 10})
        assert spec.target == "app.filters.Throttle"
        assert spec.mode == "-"
        assert spec.options == {"limit": 10}

    def test_class(self):
        spec = FilterSpec.parse(Passing)
        assert spec.target is Passing
        assert spec.options == {}

    def test_spec_passthrough(self):
        spec = FilterSpec(Passing, mode="+", action_ids={"View"})
        assert FilterSpec.parse(spec) is spec
        assert spec.action_ids == {"view"}

    @pytest.mark.parametrize("declaration", [
        (),
        {"limit": 10},
        (Recorder, "not a mapping"),
        (42, {}),
        42,
    ])
    def test_malformed(self, declaration):
        with pytest.raises(ActionConfigFault) as exc_info:
            FilterSpec.parse(declaration)
        assert exc_info.value.metadata["reason"] == "bad_filter_spec"

    def test_bad_mode(self):
        with pytest.raises(ActionConfigFault):
            FilterSpec("postOnly", inline=True, mode="*")


# ============================================================================
# FilterChain
# ============================================================================

class TestFilterChain:

    @pytest.mark.asyncio
    async def test_order_and_post_phase(self, context):
        log = []
        C = recording_controller(log, [
            {"class": Recorder, "label": "a", "log": log},
            {"class": Recorder, "label": "b", "log": log},
        ])

        out = await C("c", context=context).run("index")
        assert out == "done"
        assert log == ["pre:a", "pre:b", "action", "post:b", "post:a"]

    @pytest.mark.asyncio
    async def test_short_circuit(self, context, sink):
        log = []
        C = recording_controller(log, [
            {"class": Recorder, "label": "a", "log": log},
            {"class": Blocker, "log": log},
            {"class": Recorder, "label": "c", "log": log},
        ])

        out = await C("c", context=context).run("index")
        assert out is None
        assert log == ["pre:a", "blocked", "post:a"]
        assert sink.outputs == [None]

    @pytest.mark.asyncio
    async def test_restricted_filters_skipped(self, context):
        log = []
        C = recording_controller(log, [
            ({"class": Recorder, "label": "only-view", "log": log}),
            FilterSpec(Recorder, mode="+", action_ids={"delete"}, options={"label": "x", "log": log}),
            FilterSpec(Recorder, mode="-", action_ids={"index"}, options={"label": "y", "log": log}),
        ])

        await C("c", context=context).run("index")
        assert log == ["pre:only-view", "action", "post:only-view"]

    @pytest.mark.asyncio
    async def test_init_called(self, context):
        C = recording_controller([], [Initialised])
        assert await C("c", context=context).run("index") == "done"

    @pytest.mark.asyncio
    async def test_object_without_filter_method(self, context):
        C = recording_controller([], [NotAFilter])
        with pytest.raises(ActionConfigFault) as exc_info:
            await C("c", context=context).run("index")
        assert exc_info.value.metadata["reason"] == "missing_filter"

    @pytest.mark.asyncio
    async def test_unknown_filter_option(self, context):
        C = recording_controller([], [{"class": Passing, "speed": 3}])
        with pytest.raises(ActionConfigFault) as exc_info:
            await C("c", context=context).run("index")
        assert exc_info.value.metadata["reason"] == "unknown_option"

    @pytest.mark.asyncio
    async def test_params_reach_action(self, context):
        log = []
        C = recording_controller(log, [{"class": Recorder, "label": "a", "log": log}])

        assert await C("c", context=context).run("view", {"name": "bar"}) == "bar"
        assert "view:bar" in log

    @pytest.mark.asyncio
    async def test_current_action_visible_to_filters(self, context):
        seen = []

        class Watching(Filter):
            def pre_filter(self, chain):
                seen.append(chain.controller.action.id)
                return True

        C = recording_controller([], [Watching])
        c = C("c", context=context)
        await c.run("view")
        assert seen == ["view"]
        assert c.action is None

    @pytest.mark.asyncio
    async def test_chain_runs_action_when_exhausted(self, context):
        log = []
        C = recording_controller(log, [])
        c = C("c", context=context)
        action = c.create_action("view")

        chain = FilterChain(c, action)
        assert len(chain) == 0
        assert await chain.run({"name": "direct"}) == "direct"
        assert chain.params == {"name": "direct"}

    @pytest.mark.asyncio
    async def test_chain_params_default_to_first_call(self, context):
        class Forgetful(Filter):
            async def filter(self, chain, params=None):
                return await chain.run()

        C = recording_controller([], [Forgetful])
        assert await C("c", context=context).run("view", {"name": "kept"}) == "kept"

    @pytest.mark.asyncio
    async def test_filter_exception_propagates(self, context):
        class Exploding(Filter):
            def pre_filter(self, chain):
                raise ValueError("nope")

        C = recording_controller([], [Exploding])
        c = C("c", context=context)
        with pytest.raises(ValueError):
            await c.run("index")
        assert c.action is None
        assert context.buffers == []


# ============================================================================
# Inline filters
# ============================================================================

class TestInlineFilters:

    @pytest.mark.asyncio
    async def test_inline_filter_method(self, context):
        calls = []

        class C(Controller):
            def filters(self):
                return ["audit"]

            async def filter_audit(self, chain, params=None):
                calls.append(chain.action.id)
                return await chain.run(params)

            def action_index(self):
                return "ok"

        assert await C("c", context=context).run() == "ok"
        assert calls == ["index"]

    @pytest.mark.asyncio
    async def test_inline_filter_can_replace_params(self, context):
        class C(Controller):
            def filters(self):
                return ["override"]

            def filter_override(self, chain, params=None):
                return chain.run({"name": "override"})

            def action_view(self, name="foo"):
                return name

        assert await C("c", context=context).run("view", {"name": "x"}) == "override"

    def test_camel_case_name_falls_back_to_snake_case(self, context):
        c = Controller("c", context=context)
        inline = InlineFilter.create(c, "postOnly")
        assert inline.method_name == "filter_post_only"

    def test_unknown_inline_filter(self, context):
        c = Controller("c", context=context)
        with pytest.raises(ActionConfigFault) as exc_info:
            InlineFilter.create(c, "nope")
        assert exc_info.value.metadata["reason"] == "unknown_filter"
        assert 'Filter "nope" is invalid.' in exc_info.value.message
        assert '"filter_nope"' in exc_info.value.message

    def test_non_callable_attribute_is_not_a_filter(self, context):
        c = Controller("c", context=context)
        with pytest.raises(ActionConfigFault):
            InlineFilter.create(c, "prefix")


# ============================================================================
# Built-in filters
# ============================================================================

class TestBuiltinFilters:

    def _controller(self, declarations):
        class C(Controller):
            def filters(self):
                return declarations

            def action_view(self):
                return "view"

            def action_delete(self):
                return "deleted"

        return C

    @pytest.mark.asyncio
    async def test_post_only_rejects_get(self, context, request_factory):
        context.request = request_factory("GET")
        C = self._controller(["postOnly"])
        with pytest.raises(BadRequestFault) as exc_info:
            await C("c", context=context).run("delete")
        assert exc_info.value.status == 400
        assert exc_info.value.message == "Your request is invalid."

    @pytest.mark.asyncio
    async def test_post_only_allows_post(self, context, request_factory):
        context.request = request_factory("POST")
        C = self._controller(["postOnly"])
        assert await C("c", context=context).run("delete") == "deleted"

    @pytest.mark.asyncio
    async def test_post_only_restricted(self, context, request_factory):
        context.request = request_factory("GET")
        C = self._controller(["postOnly + delete"])
        c = C("c", context=context)

        assert await c.run("view") == "view"
        with pytest.raises(BadRequestFault):
            await c.run("delete")

    @pytest.mark.asyncio
    async def test_ajax_only(self, context, request_factory):
        C = self._controller(["ajaxOnly"])

        context.request = request_factory("GET")
        with pytest.raises(BadRequestFault):
            await C("c", context=context).run("view")

        context.request = request_factory("GET", {"X-Requested-With": "XMLHttpRequest"})
        assert await C("c", context=context).run("view") == "view"

    @pytest.mark.asyncio
    async def test_class_filter_by_dotted_path(self, context):
        C = self._controller([
            ("halyard.controller.access.AccessControlFilter - view", {"rules": [("deny", {"users": ["*"]})]}),
        ])
        c = C("c", context=context)

        assert await c.run("view") == "view"
        with pytest.raises(ForbiddenFault):
            await c.run("delete")

    @pytest.mark.asyncio
    async def test_filters_concatenated_from_parent(self, context, request_factory):
        context.request = request_factory("GET", {"X-Requested-With": "XMLHttpRequest"})

        class Base(Controller):
            def filters(self):
                return ["ajaxOnly"]

            def action_delete(self):
                return "deleted"

        class Child(Base):
            def filters(self):
                return super().filters() + ["postOnly + delete"]

        with pytest.raises(BadRequestFault):
            await Child("c", context=context).run("delete")
