"""Unit tests for partial-message accumulation."""

from functools import reduce

from ollie.message import MessageRole, ToolCall
from ollie.streaming import AssembledMessage, PartialMessage, accumulate


def _fold(partials):
    return reduce(accumulate, partials, AssembledMessage())


class TestAccumulate:
    def test_fragments_are_concatenated(self):
        message = _fold([
            PartialMessage(text="The "),
            PartialMessage(text="sky is blue"),
            PartialMessage(text="", done=True, eval_count=5, eval_duration=2_000_000_000),
        ])
        assert message.text == "The sky is blue"
        assert message.done is True
        assert message.tokens_used == 5

    def test_text_length_never_shrinks_without_final_text(self):
        partials = [PartialMessage(text=t) for t in ["a", "", "bc", "d"]]
        message = AssembledMessage()
        lengths = []
        for p in partials:
            message = accumulate(message, p)
            lengths.append(len(message.text))
        assert lengths == sorted(lengths)
        assert message.text == "abcd"

    def test_terminal_final_text_overrides(self):
        message = _fold([
            PartialMessage(text="partial te"),
            PartialMessage(final_text="The full reply.", done=True),
        ])
        assert message.text == "The full reply."

    def test_final_text_ignored_before_terminal(self):
        message = _fold([PartialMessage(text="abc", final_text="xyz")])
        assert message.text == "abc"

    def test_tool_calls_kept_in_arrival_order(self):
        first = ToolCall(name="a", arguments={"x": 1})
        second = ToolCall(name="b")
        message = _fold([
            PartialMessage(tool_calls=(first,)),
            PartialMessage(tool_calls=(second,)),
        ])
        assert message.tool_calls == (first, second)

    def test_metadata_overwritten_by_later_partials(self):
        message = _fold([
            PartialMessage(model="m1", eval_count=1),
            PartialMessage(model="m2"),
        ])
        assert message.model == "m2"
        assert message.eval_count == 1

    def test_error_recorded_without_finishing(self):
        message = _fold([PartialMessage(error="model not found")])
        assert message.errors == ("model not found",)
        assert message.done is False

    def test_thinking_accumulates_separately(self):
        message = _fold([
            PartialMessage(thinking="hmm "),
            PartialMessage(thinking="ok", text="Answer"),
        ])
        assert message.thinking == "hmm ok"
        assert message.text == "Answer"

    def test_role_taken_from_partial(self):
        message = _fold([PartialMessage(role=MessageRole.TOOL, text="x")])
        assert message.role is MessageRole.TOOL

    def test_inputs_are_not_mutated(self):
        prior = AssembledMessage(text="a")
        partial = PartialMessage(text="b")
        result = accumulate(prior, partial)
        assert prior.text == "a"
        assert result.text == "ab"
        assert result is not prior

    def test_empty_partial_returns_prior(self):
        prior = AssembledMessage(text="a")
        assert accumulate(prior, PartialMessage()) is prior


class TestAssembledMessage:
    def test_finalize_marks_done(self):
        assert AssembledMessage(text="x").finalize().done is True

    def test_without_thinking(self):
        message = AssembledMessage(text="<think>plan</think>Hello")
        assert message.without_thinking().text == "Hello"

    def test_to_dict(self):
        message = AssembledMessage(
            text="hi", tool_calls=(ToolCall(name="f", arguments={"a": 1}),),
        )
        data = message.to_dict()
        assert data["role"] == "assistant"
        assert data["tool_calls"] == [{"name": "f", "arguments": {"a": 1}, "id": None}]
        assert data["errors"] == []
