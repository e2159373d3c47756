from __future__ import annotations

"""
Typed data contracts for word-level, speaker-tagged recognition output.

Design intent:
- Keep tokens, runs and utterances immutable so committed text cannot drift.
- Make every state change produce a new value the aggregator can swap in.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Token(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str
    speaker_id: int = Field(ge=0)
    is_final: bool = False


class Run(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    speaker_id: int = Field(ge=0)
    tokens: tuple[Token, ...]

    @model_validator(mode="after")
    def _validate_tokens(self) -> "Run":
        if not self.tokens:
            raise ValueError("Run.tokens must not be empty")
        for token in self.tokens:
            if token.speaker_id != self.speaker_id:
                raise ValueError("Run.tokens must all belong to Run.speaker_id")
        return self

    @property
    def last_token(self) -> Token:
        return self.tokens[-1]


class Utterance(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    speaker_id: int = Field(ge=0)
    text: str
    is_complete: bool = False
    committed: bool = False


class UtteranceView(BaseModel):
    """Presentation payload: one line of the rendered transcript."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    speaker_id: int = Field(ge=0)
    text: str
    is_complete: bool

    @classmethod
    def from_utterance(cls, utterance: Utterance) -> "UtteranceView":
        return cls(
            speaker_id=utterance.speaker_id,
            text=utterance.text,
            is_complete=utterance.is_complete,
        )
