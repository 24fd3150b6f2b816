"""
Tests for src.streaming.frames: event-stream encoding and incremental decoding.
"""

from src.streaming.frames import (
    DONE_FRAME,
    FrameDecoder,
    chat_id_frame,
    content_frame,
    error_frame,
    title_frame,
)


def test_frames_are_compact_single_line_json():
    assert chat_id_frame("abc") == b'data: {"chatId":"abc"}\n\n'
    assert content_frame("Hi there") == b'data: {"content":"Hi there"}\n\n'
    assert title_frame("Ski Bus") == b'data: {"title":"Ski Bus"}\n\n'
    assert error_frame() == b'data: {"error":"Stream error"}\n\n'
    assert DONE_FRAME == b"data: [DONE]\n\n"


def test_content_with_newlines_stays_on_one_line():
    frame = content_frame("line one\nline two")
    assert frame.count(b"\n") == 2
    assert frame.endswith(b"\n\n")


def test_decoder_holds_partial_line_until_terminated():
    decoder = FrameDecoder()

    assert decoder.feed(b'data: {"content":"Hel') == []
    frames = decoder.feed(b'lo"}\n\ndata: {"content":" world"}\n')

    assert [f.content for f in frames] == ["Hello", " world"]


def test_decoder_handles_multibyte_character_split_across_reads():
    encoded = content_frame("Snowbird ❄ Alta")
    split = encoded.index("❄".encode("utf-8")) + 1

    decoder = FrameDecoder()
    first = decoder.feed(encoded[:split])
    second = decoder.feed(encoded[split:])

    assert first == []
    assert [f.content for f in second] == ["Snowbird ❄ Alta"]


def test_decoder_recognizes_done_sentinel():
    decoder = FrameDecoder()
    frames = decoder.feed(content_frame("a") + DONE_FRAME)

    assert frames[-1].done
    assert decoder.done


def test_decoder_ignores_unknown_fields_and_junk_lines():
    decoder = FrameDecoder()
    body = (
        b": keep-alive comment\n"
        b'data: {"content":"x","tokens":3}\n\n'
        b"data: not json\n\n"
        b'data: ["a list"]\n\n'
        b"event: ping\n"
    )
    frames = decoder.feed(body)

    assert len(frames) == 1
    assert frames[0].content == "x"
    assert frames[0].chat_id is None


def test_flush_parses_unterminated_last_line():
    decoder = FrameDecoder()
    assert decoder.feed(b'data: {"title":"Powder Day"}') == []

    frames = decoder.flush()

    assert [f.title for f in frames] == ["Powder Day"]


def test_decoder_accepts_crlf_line_endings():
    decoder = FrameDecoder()
    frames = decoder.feed(b'data: {"chatId":"c1"}\r\n\r\ndata: [DONE]\r\n\r\n')

    assert frames[0].chat_id == "c1"
    assert frames[1].done


def test_done_key_in_json_payload_is_not_terminal():
    decoder = FrameDecoder()
    frames = decoder.feed(b'data: {"content":"hi","done":true}\n\n')

    assert frames[0].content == "hi"
    assert not frames[0].done
    assert not decoder.done
