"""Pydantic models for events, odds and merged records."""

from __future__ import annotations

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    participant_a: str
    participant_b: str
    start_time: AwareDatetime


class OddsQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: int
    odds_a: float = Field(gt=0)
    odds_b: float = Field(gt=0)


class MergedRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: Event
    odds: OddsQuote

    @model_validator(mode="after")
    def _odds_match_event(self) -> MergedRecord:
        if self.odds.event_id != self.event.id:
            raise ValueError(
                f"odds for event {self.odds.event_id} cannot be paired with event {self.event.id}"
            )
        return self

    @property
    def id(self) -> int:
        return self.event.id

    def with_odds(self, odds: OddsQuote) -> MergedRecord:
        return MergedRecord(event=self.event, odds=odds)


EventList = TypeAdapter(list[Event])
OddsList = TypeAdapter(list[OddsQuote])
RecordList = TypeAdapter(list[MergedRecord])
