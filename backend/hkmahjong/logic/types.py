"""
Pydantic models for game logic data structures.

Contains typed models for scoring, claim and kong options, action results,
automated player decisions, and the per-seat views that cross component
boundaries.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hkmahjong.logic.enums import (
    AIDecisionType,
    ClaimEpisodeType,
    ClaimType,
    KongType,
    RoundPhase,
    RoundResultType,
    SpecialHand,
    Wind,
)
from hkmahjong.logic.meld_model import Meld


class ScoringContext(BaseModel):
    """Situational flags for a win that affect faan."""

    model_config = ConfigDict(frozen=True)

    self_drawn: bool = False
    is_last_wall_tile: bool = False
    is_kong_replacement: bool = False
    is_robbing_kong: bool = False


class FaanItem(BaseModel):
    """A single named faan contribution."""

    model_config = ConfigDict(frozen=True)

    name: str
    faan: int


class FaanResult(BaseModel):
    """Total faan with its itemized breakdown."""

    model_config = ConfigDict(frozen=True)

    faan: int = 0
    items: tuple[FaanItem, ...] = ()
    is_limit: bool = False


class ClaimOption(BaseModel):
    """
    A legal claim for one seat on one tile.

    `tile_ids` are the tiles the claimant would take from their own hand
    (two for pong or chow, three for kong, none for win).
    """

    model_config = ConfigDict(frozen=True)

    seat: int
    claim_type: ClaimType
    tile_ids: tuple[int, ...] = ()


class KongOption(BaseModel):
    """A kong the current player may declare from hand."""

    model_config = ConfigDict(frozen=True)

    kong_type: KongType
    tile_ids: tuple[int, ...]
    meld_index: int | None = None


class DrawResult(BaseModel):
    """A tile landed in a seat's hand (normal or replacement draw)."""

    type: Literal["tile_drawn"] = "tile_drawn"
    seat: int
    tile_id: int
    can_win: bool = False
    kong_options: list[KongOption] = Field(default_factory=list)
    is_replacement: bool = False
    bonus_tiles: list[int] = Field(default_factory=list)
    wall_remaining: int = 0


class DrawGameResult(BaseModel):
    """Round ended because the wall ran out."""

    type: Literal[RoundResultType.DRAW_GAME] = RoundResultType.DRAW_GAME
    reason: str = "wall_exhausted"
    scores: dict[int, int] = Field(default_factory=dict)
    score_changes: dict[int, int] = Field(default_factory=dict)


class DiscardResult(BaseModel):
    """
    A tile was discarded.

    Either `claims` is non-empty and a claim episode is open, or
    `next_seat` names the seat that draws next.
    """

    type: Literal["tile_discarded"] = "tile_discarded"
    seat: int
    tile_id: int
    claims: list[ClaimOption] = Field(default_factory=list)
    next_seat: int | None = None
    wall_remaining: int = 0


class WinResult(BaseModel):
    """Result of a completed win, with payment applied."""

    type: RoundResultType
    winner_seat: int
    payer_seat: int | None = None
    winning_tile: int | None = None
    special_hand: SpecialHand | None = None
    melds: list[Meld] = Field(default_factory=list)
    concealed_tiles: list[int] = Field(default_factory=list)
    flowers: list[int] = Field(default_factory=list)
    faan: FaanResult
    base_points: int
    score_changes: dict[int, int]
    scores: dict[int, int]

    @property
    def self_drawn(self) -> bool:
        return self.type == RoundResultType.SELF_DRAWN


class ClaimRegisteredResult(BaseModel):
    """A claim response was recorded; other obligated seats have yet to answer."""

    type: Literal["claim_registered"] = "claim_registered"
    seat: int
    claim_type: ClaimType
    pending_seats: list[int] = Field(default_factory=list)


class KongRobberyResult(BaseModel):
    """An added kong was interrupted: other seats may win on the added tile."""

    type: Literal["kong_robbery_possible"] = "kong_robbery_possible"
    seat: int
    tile_id: int
    meld_index: int
    claims: list[ClaimOption] = Field(default_factory=list)


class ClaimResolution(BaseModel):
    """
    Outcome of a finished claim episode.

    `claim_type` is the winning response (PASS when nobody claimed).
    `followup` carries what happened next: the claimant's replacement draw
    after a kong, the win, or the draw that completed a robbed-then-passed
    added kong.
    """

    type: Literal["claims_resolved"] = "claims_resolved"
    episode_type: ClaimEpisodeType
    claim_type: ClaimType
    seat: int | None = None
    next_seat: int | None = None
    meld: Meld | None = None
    followup: DrawResult | DrawGameResult | WinResult | None = None


class AIDecision(BaseModel):
    """An automated player's choice. It never mutates state itself."""

    model_config = ConfigDict(frozen=True)

    decision_type: AIDecisionType
    tile_ids: tuple[int, ...] = ()
    meld_index: int | None = None


class PlayerView(BaseModel):
    """What one seat can see about a player."""

    seat: int
    name: str
    seat_wind: Wind
    score: int
    hand: list[int] | None = None
    hand_size: int
    melds: list[Meld]
    concealed_kong_count: int
    concealed_kongs: list[Meld] | None = None
    flowers: list[int]
    discards: list[int]


class GameSnapshot(BaseModel):
    """
    Observable game state.

    For a seat view, only that seat's hand and concealed kongs are filled in;
    a full snapshot fills in every hand.
    """

    game_id: str
    phase: RoundPhase
    round_number: int
    prevailing_wind: Wind
    dealer_seat: int
    current_player_seat: int
    turn_count: int
    wall_remaining: int
    dead_wall_remaining: int
    last_discard: int | None = None
    last_discard_seat: int | None = None
    pending_claim_seats: list[int] = Field(default_factory=list)
    generation: int
    players: list[PlayerView]
    action_log: list[str] = Field(default_factory=list)
    viewer_seat: int | None = None


RoundResult = WinResult | DrawGameResult

ActionOutcome = (
    DrawResult
    | DrawGameResult
    | DiscardResult
    | ClaimRegisteredResult
    | ClaimResolution
    | KongRobberyResult
    | WinResult
)
