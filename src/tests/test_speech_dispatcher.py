from __future__ import annotations

"""Break point selection and incremental speech dispatch."""

from src.speech.dispatcher import SpeechDispatcher, find_break_point


class RecordingSpeaker:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, bool]] = []
        self.stops = 0
        self.fail = fail

    def speak(self, text: str, is_continuation: bool = False) -> None:
        self.calls.append((text, is_continuation))
        if self.fail:
            raise RuntimeError("audio device unavailable")

    def stop_and_clear_queue(self) -> None:
        self.stops += 1


def test_break_point_needs_min_length() -> None:
    assert find_break_point("Too short.", 30) == ""


def test_break_point_prefers_sentence_end() -> None:
    text = "The first part, with a clause. Then more words follow"

    assert find_break_point(text, 10) == "The first part, with a clause."


def test_break_point_uses_clause_without_sentence_end() -> None:
    assert find_break_point("one two three, four five six seven", 10) == "one two three,"


def test_break_point_ignores_terminator_without_whitespace() -> None:
    assert find_break_point("3.14 is pi, roughly speaking ok", 10) == "3.14 is pi,"


def test_break_point_falls_back_to_space_after_min_length() -> None:
    assert find_break_point("abcdefghijkl mnop qrst", 5) == "abcdefghijkl "


def test_break_point_hard_cutoff() -> None:
    assert find_break_point("x" * 300, 30) == "x" * 200
    assert find_break_point("y" * 120, 30) == "y" * 120


def test_break_point_only_searches_window() -> None:
    text = "word " * 110 + "end. more"

    assert find_break_point(text, 30) == text[:35]


def test_first_segment_waits_for_min_first_chars() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker, min_first_chars=30, min_continuation_chars=20)

    assert dispatcher.observe("The sky is blue.") is None
    assert not dispatcher.speech_started
    assert speaker.calls == []


def test_segments_tile_answer_without_overlap() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker, min_first_chars=30, min_continuation_chars=20)
    answer = (
        "The sky is blue because of Rayleigh scattering. Shorter wavelengths scatter more, "
        "so blue light reaches the eye from every direction; sunsets look red for the "
        "opposite reason and the effect is strongest near the horizon"
    )

    so_far = ""
    lengths = []
    for word in answer.split(" "):
        so_far = word if not so_far else so_far + " " + word
        dispatcher.observe(so_far)
        lengths.append(dispatcher.spoken_length)
    dispatcher.finish(so_far)

    assert "".join(text for text, _ in speaker.calls) == answer
    assert speaker.calls[0][1] is False
    assert all(continuation for _, continuation in speaker.calls[1:])
    assert len(speaker.calls) > 2
    assert lengths == sorted(lengths)
    assert dispatcher.spoken_length == len(answer)


def test_first_segment_is_a_sentence() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker, min_first_chars=30, min_continuation_chars=20)

    segment = dispatcher.observe("The sky is blue. The grass is green and")

    assert segment == "The sky is blue."
    assert speaker.calls == [("The sky is blue.", False)]
    assert dispatcher.spoken_length == len("The sky is blue.")


def test_finish_skips_blank_leftover() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker, min_first_chars=10, min_continuation_chars=5)
    dispatcher.observe("Hello there. ")
    speaker.calls.clear()

    assert dispatcher.finish("Hello there.   ") is None
    assert speaker.calls == []


def test_finish_speaks_short_answer_that_never_started() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker)

    assert dispatcher.finish("Yes.") == "Yes."
    assert speaker.calls == [("Yes.", True)]


def test_reset_restores_initial_state() -> None:
    speaker = RecordingSpeaker()
    dispatcher = SpeechDispatcher(speaker, min_first_chars=10, min_continuation_chars=5)
    dispatcher.observe("First sentence here. And")

    dispatcher.reset()
    dispatcher.reset()

    assert not dispatcher.speech_started
    assert dispatcher.spoken_length == 0
    assert speaker.stops == 2

    dispatcher.reset(stop_speech=False)
    assert speaker.stops == 2


def test_speaker_errors_do_not_stop_dispatch() -> None:
    speaker = RecordingSpeaker(fail=True)
    dispatcher = SpeechDispatcher(speaker, min_first_chars=10, min_continuation_chars=5)

    segment = dispatcher.observe("First sentence here. And")

    assert segment == "First sentence here."
    assert dispatcher.spoken_length == len(segment)
