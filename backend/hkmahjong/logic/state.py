"""
Immutable game state models for Hong Kong mahjong.

All state objects are frozen pydantic models. Transitions build new state
with `model_copy(update=...)` and never mutate, so a rejected action leaves
the stored state untouched.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hkmahjong.logic.enums import (
    WIND_ORDER,
    ClaimEpisodeType,
    ClaimType,
    RoundPhase,
    Wind,
)
from hkmahjong.logic.meld_model import Meld
from hkmahjong.logic.settings import NUM_PLAYERS, GameSettings
from hkmahjong.logic.types import ClaimOption, DrawGameResult, GameSnapshot, PlayerView, WinResult
from hkmahjong.logic.wall import Wall


class MahjongPlayer(BaseModel):
    """Per-seat state. `hand` holds concealed tile ids only."""

    model_config = ConfigDict(frozen=True)

    seat: int
    name: str
    hand: tuple[int, ...] = ()
    melds: tuple[Meld, ...] = ()
    concealed_kongs: tuple[Meld, ...] = ()
    discards: tuple[int, ...] = ()
    flowers: tuple[int, ...] = ()
    score: int = 0

    @property
    def total_melds(self) -> int:
        """Declared sets: exposed melds plus concealed kongs."""
        return len(self.melds) + len(self.concealed_kongs)

    @property
    def effective_tile_count(self) -> int:
        """Hand size counting each declared set as three tiles (13 between turns, 14 when acting)."""
        return len(self.hand) + 3 * self.total_melds


class ClaimResponse(BaseModel):
    """One seat's recorded answer in a claim episode."""

    model_config = ConfigDict(frozen=True)

    seat: int
    claim_type: ClaimType
    tile_ids: tuple[int, ...] = ()
    order: int


class ClaimEpisode(BaseModel):
    """
    Pending-claims ledger for one claimable tile.

    `responses` is indexed by seat (None until the seat answers). `order`
    on each response records insertion order for tie-breaking. Seats with
    no legal option are recorded as passes when the episode opens.
    """

    model_config = ConfigDict(frozen=True)

    episode_type: ClaimEpisodeType
    tile_id: int
    from_seat: int
    options: tuple[ClaimOption, ...]
    responses: tuple[ClaimResponse | None, ...] = (None,) * NUM_PLAYERS
    next_order: int = 0
    meld_index: int | None = None

    @property
    def obligated_seats(self) -> list[int]:
        """Seats with at least one legal option."""
        return sorted({option.seat for option in self.options})

    @property
    def pending_seats(self) -> list[int]:
        return [seat for seat in range(NUM_PLAYERS) if seat != self.from_seat and self.responses[seat] is None]

    @property
    def is_complete(self) -> bool:
        return not self.pending_seats

    def options_for(self, seat: int) -> list[ClaimOption]:
        return [option for option in self.options if option.seat == seat]


class MahjongRoundState(BaseModel):
    """State of a single round (one deal)."""

    model_config = ConfigDict(frozen=True)

    wall: Wall = Field(default_factory=Wall)
    players: tuple[MahjongPlayer, ...] = ()
    phase: RoundPhase = RoundPhase.WAITING
    dealer_seat: int = 0
    current_player_seat: int = 0
    prevailing_wind: Wind = Wind.EAST
    last_discard: int | None = None
    last_discard_seat: int | None = None
    claim_episode: ClaimEpisode | None = None
    last_drawn_tile: int | None = None
    is_kong_replacement: bool = False
    turn_count: int = 0
    action_log: tuple[str, ...] = ()


class MahjongGameState(BaseModel):
    """Full game state across rounds."""

    model_config = ConfigDict(frozen=True)

    game_id: str = ""
    round_state: MahjongRoundState = Field(default_factory=MahjongRoundState)
    round_number: int = 0
    generation: int = 0
    seed: str = ""
    settings: GameSettings = Field(default_factory=GameSettings)
    round_result: WinResult | DrawGameResult | None = None


def seat_to_wind(seat: int, dealer_seat: int) -> Wind:
    """Seat wind: the dealer is East, then counter-clockwise South, West, North."""
    return WIND_ORDER[(seat - dealer_seat) % NUM_PLAYERS]


def _player_view(round_state: MahjongRoundState, player: MahjongPlayer, *, reveal: bool) -> PlayerView:
    return PlayerView(
        seat=player.seat,
        name=player.name,
        seat_wind=seat_to_wind(player.seat, round_state.dealer_seat),
        score=player.score,
        hand=list(player.hand) if reveal else None,
        hand_size=len(player.hand),
        melds=list(player.melds),
        concealed_kong_count=len(player.concealed_kongs),
        concealed_kongs=list(player.concealed_kongs) if reveal else None,
        flowers=list(player.flowers),
        discards=list(player.discards),
    )


def build_snapshot(game_state: MahjongGameState, viewer_seat: int | None = None) -> GameSnapshot:
    """
    Build an observable snapshot.

    With `viewer_seat` set, only that seat's hand and concealed kongs are
    revealed; others show counts. Without it, every hand is revealed.
    """
    round_state = game_state.round_state
    episode = round_state.claim_episode
    return GameSnapshot(
        game_id=game_state.game_id,
        phase=round_state.phase,
        round_number=game_state.round_number,
        prevailing_wind=round_state.prevailing_wind,
        dealer_seat=round_state.dealer_seat,
        current_player_seat=round_state.current_player_seat,
        turn_count=round_state.turn_count,
        wall_remaining=len(round_state.wall.live_tiles),
        dead_wall_remaining=len(round_state.wall.dead_wall_tiles),
        last_discard=round_state.last_discard,
        last_discard_seat=round_state.last_discard_seat,
        pending_claim_seats=episode.pending_seats if episode is not None else [],
        generation=game_state.generation,
        players=[
            _player_view(round_state, p, reveal=viewer_seat is None or p.seat == viewer_seat)
            for p in round_state.players
        ],
        action_log=list(round_state.action_log),
        viewer_seat=viewer_seat,
    )


def all_tile_locations(round_state: MahjongRoundState) -> list[int]:
    """Every tile id held anywhere in the round (wall, hands, melds, discards, flowers)."""
    tiles = [*round_state.wall.live_tiles, *round_state.wall.dead_wall_tiles]
    for player in round_state.players:
        tiles.extend(player.hand)
        tiles.extend(player.discards)
        tiles.extend(player.flowers)
        for meld in (*player.melds, *player.concealed_kongs):
            tiles.extend(meld.tile_ids)
    return tiles
