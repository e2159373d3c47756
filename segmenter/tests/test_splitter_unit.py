from segmenter.asr.models import Token
from segmenter.asr.splitter import split_runs


def _tok(text: str, speaker: int, is_final: bool = False) -> Token:
    return Token(text=text, speaker_id=speaker, is_final=is_final)


def test_split_runs_empty_input_returns_no_runs() -> None:
    assert split_runs([]) == []


def test_split_runs_single_speaker_is_one_run() -> None:
    tokens = [_tok("one", 0), _tok("two", 0), _tok("three", 0, True)]
    runs = split_runs(tokens)
    assert len(runs) == 1
    assert runs[0].speaker_id == 0
    assert [t.text for t in runs[0].tokens] == ["one", "two", "three"]
    assert runs[0].last_token.is_final is True


def test_split_runs_starts_new_run_on_speaker_change() -> None:
    tokens = [_tok("hi", 1), _tok("there", 0, True)]
    runs = split_runs(tokens)
    assert [r.speaker_id for r in runs] == [1, 0]
    assert [[t.text for t in r.tokens] for r in runs] == [["hi"], ["there"]]


def test_split_runs_does_not_merge_non_adjacent_same_speaker_tokens() -> None:
    tokens = [_tok("a", 0), _tok("b", 0), _tok("c", 1), _tok("d", 0)]
    runs = split_runs(tokens)
    assert [r.speaker_id for r in runs] == [0, 1, 0]
    assert [len(r.tokens) for r in runs] == [2, 1, 1]


def test_split_runs_preserves_token_order_across_runs() -> None:
    tokens = [_tok(str(i), i % 3 // 2) for i in range(9)]
    runs = split_runs(tokens)
    flattened = [t.text for r in runs for t in r.tokens]
    assert flattened == [str(i) for i in range(9)]
    for left, right in zip(runs, runs[1:]):
        assert left.speaker_id != right.speaker_id
