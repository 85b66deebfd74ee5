from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING, Any

import structlog

from hkmahjong.logic.ai_player import AIPlayer
from hkmahjong.logic.ai_player_controller import AIPlayerController
from hkmahjong.logic.enums import AIDifficulty, GameAction, GameErrorCode, RoundPhase
from hkmahjong.logic.exceptions import GameRuleError
from hkmahjong.logic.game import MahjongGame
from hkmahjong.logic.rng import create_ai_rng
from hkmahjong.logic.settings import NUM_PLAYERS, GameSettings
from hkmahjong.logic.types import ClaimResolution, DrawResult
from hkmahjong.messaging.types import (
    ClaimAvailableMessage,
    ErrorMessage,
    GameJoinedMessage,
    GameStateMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PongMessage,
    RoundEndedMessage,
    SessionErrorCode,
    YourTurnMessage,
)
from hkmahjong.session.broadcast import broadcast_to_players
from hkmahjong.session.models import Game, Player, validate_num_ai_players
from hkmahjong.session.scheduler import AIActionScheduler

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hkmahjong.logic.types import ActionOutcome
    from hkmahjong.messaging.protocol import ConnectionProtocol
    from hkmahjong.session.registry import GameRegistry

logger = structlog.get_logger()

HAND_SIZE_BEFORE_DRAW = 13
_GAME_REAPER_INTERVAL = 30  # seconds between reaper checks


class SessionManager:
    """
    Serializes every action on a game behind a per-game lock.

    After each committed action the manager broadcasts per-seat snapshots,
    prompts the humans who may act, draws for a human whose turn starts,
    and schedules automated seats through the AIActionScheduler.
    """

    def __init__(
        self,
        registry: GameRegistry,
        *,
        ai_difficulty: AIDifficulty = AIDifficulty.MEDIUM,
        ai_delay_override: float | None = None,
        game_ttl_seconds: int = 0,
    ) -> None:
        self._registry = registry
        self._ai_difficulty = ai_difficulty
        self._ai_delay_override = ai_delay_override
        self._connections: dict[str, ConnectionProtocol] = {}
        self._players: dict[str, Player] = {}  # connection_id -> Player
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock
        self._scheduler = AIActionScheduler(on_fire=self._handle_ai_action)
        self._game_ttl_seconds = game_ttl_seconds
        self._game_reaper_task: asyncio.Task[None] | None = None

    @property
    def registry(self) -> GameRegistry:
        return self._registry

    @property
    def scheduler(self) -> AIActionScheduler:
        return self._scheduler

    @property
    def game_count(self) -> int:
        return len(self._registry)

    def get_game(self, game_id: str) -> Game | None:
        return self._registry.get(game_id)

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        self._players.pop(connection.connection_id, None)

    async def _send_error(
        self,
        connection: ConnectionProtocol,
        code: SessionErrorCode | GameErrorCode,
        message: str,
    ) -> None:
        logger.warning("session error sent to client", error_code=code, error_message=message)
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(ErrorMessage(code=code, message=message).model_dump())

    def _ai_delay(self, game: Game) -> float:
        """Think time for the next automated action, by what the seat has to do."""
        if self._ai_delay_override is not None:
            return self._ai_delay_override
        mahjong = game.game
        settings = mahjong.settings
        if mahjong.phase == RoundPhase.CLAIM:
            return settings.ai_claim_delay_seconds
        player = mahjong.player(mahjong.current_player_seat)
        if player.effective_tile_count == HAND_SIZE_BEFORE_DRAW:
            return settings.ai_turn_delay_seconds
        return settings.ai_discard_delay_seconds

    def _new_ai_player(self, game: MahjongGame, seat: int) -> AIPlayer:
        return AIPlayer(seat, difficulty=game.settings.ai_difficulty, rng=create_ai_rng(game.seed, seat))

    # --- Game lifecycle ---

    async def create_game(
        self,
        num_ai_players: int = 3,
        *,
        game_id: str | None = None,
        seed: str | None = None,
        player_names: Sequence[str | None] = (),
        ai_difficulty: AIDifficulty | None = None,
    ) -> Game:
        """
        Create, register and deal a new game.

        Human seats come first; the last `num_ai_players` seats are automated.
        Raises ValueError for a bad seat count, a duplicate id, or a full registry.
        """
        validate_num_ai_players(num_ai_players)
        settings = GameSettings(ai_difficulty=ai_difficulty or self._ai_difficulty)
        mahjong = MahjongGame(game_id, seed=seed, settings=settings, player_names=player_names)
        ai_seats = range(NUM_PLAYERS - num_ai_players, NUM_PLAYERS)
        controller = AIPlayerController({seat: self._new_ai_player(mahjong, seat) for seat in ai_seats})
        game = Game(game_id=mahjong.game_id, game=mahjong, controller=controller, num_ai_players=num_ai_players)

        self._registry.add(game)
        self._game_locks[game.game_id] = asyncio.Lock()
        structlog.contextvars.bind_contextvars(game_id=game.game_id)
        mahjong.initialize_game()
        logger.info("game created", num_ai_players=num_ai_players)

        async with self._game_locks[game.game_id]:
            await self._drive(game)
        return game

    async def _cleanup_game(self, game: Game) -> None:
        """Forget a game that has no humans left."""
        if game.is_empty and self._registry.remove(game.game_id) is not None:
            logger.info("game is empty, cleaning up", game_id=game.game_id)
            self._scheduler.cancel_game(game.game_id)
            self._game_locks.pop(game.game_id, None)

    def cancel_all_pending_actions(self) -> None:
        self._scheduler.cancel_all()

    # --- Game reaper ---

    def start_game_reaper(self) -> None:
        """Start the periodic game reaper task. Idempotent; a TTL of 0 disables it."""
        if self._game_ttl_seconds <= 0:
            return
        if self._game_reaper_task is not None and not self._game_reaper_task.done():
            return
        self._game_reaper_task = asyncio.create_task(self._game_reaper_loop())

    async def stop_game_reaper(self) -> None:
        if self._game_reaper_task is not None:
            self._game_reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._game_reaper_task
            self._game_reaper_task = None

    async def _game_reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(_GAME_REAPER_INTERVAL)
            try:
                await self._reap_expired_games()
            except Exception:
                logger.exception("game reaper encountered an error")

    async def _reap_expired_games(self) -> None:
        """
        Remove every game idle for longer than the TTL and close its connections.

        Games nobody joined are removed too, which frees their registry slot.
        Expiry is re-checked under the game lock, and the game leaves the
        registry before any connection is closed so nobody can join it.
        """
        now = time.monotonic()
        expired_candidates = [
            game.game_id for game in self._registry if game.idle_seconds(now) > self._game_ttl_seconds
        ]
        for game_id in expired_candidates:
            lock = self._game_locks.get(game_id)
            if lock is None:
                continue

            players_to_close: list[Player] = []
            async with lock:
                game = self._registry.get(game_id)
                if game is None or game.idle_seconds(now) <= self._game_ttl_seconds:
                    continue
                logger.info(
                    "game expired, closing",
                    game_id=game_id,
                    age_seconds=round(now - game.created_at),
                    ttl_seconds=self._game_ttl_seconds,
                    player_count=game.player_count,
                )
                self._registry.remove(game_id)
                self._scheduler.cancel_game(game_id)
                players_to_close = list(game.players.values())
                for player in players_to_close:
                    self._players.pop(player.connection_id, None)
                    player.game_id = None
                    player.seat = None
                game.players.clear()

            self._game_locks.pop(game_id, None)
            for player in players_to_close:
                with contextlib.suppress(RuntimeError, OSError):
                    await player.connection.close(code=1000, reason="game_expired")

    # --- Joining and leaving ---

    def _pick_seat(self, game: Game, requested: int | None) -> tuple[int | None, SessionErrorCode | None]:
        """Seat for a joining human: the requested one, else a vacant seat, else an automated one."""
        if requested is not None:
            if game.player_at_seat(requested) is not None:
                return None, SessionErrorCode.SEAT_TAKEN
            return requested, None
        if game.vacant_seats:
            return game.vacant_seats[0], None
        ai_seats = sorted(game.controller.ai_player_seats)
        if ai_seats:
            return ai_seats[0], None
        return None, SessionErrorCode.GAME_FULL

    async def join_game(self, connection: ConnectionProtocol, player_name: str, seat: int | None = None) -> None:
        """Seat a human in the game named by the connection, taking over an automated seat if needed."""
        existing = self._players.get(connection.connection_id)
        if existing is not None and existing.game_id is not None:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_GAME, "Already in a game")
            return

        game_id = connection.game_id
        game = self._registry.get(game_id)
        lock = self._game_locks.get(game_id)
        if game is None or lock is None:
            await self._send_error(connection, SessionErrorCode.GAME_NOT_FOUND, f"Game {game_id} not found")
            return

        async with lock:
            chosen, error = self._pick_seat(game, seat)
            if chosen is None:
                await self._send_error(connection, error or SessionErrorCode.GAME_FULL, "No seat available")
                return

            if game.controller.is_ai_player(chosen):
                game.controller.remove_ai_player(chosen)
                self._scheduler.cancel_seat(game_id, chosen)
                logger.info("human took over automated seat", seat=chosen)

            player = Player(connection=connection, name=player_name, game_id=game_id, seat=chosen)
            self._players[connection.connection_id] = player
            game.players[connection.connection_id] = player
            game.last_prompts.pop(chosen, None)
            game.game.set_player_name(chosen, player_name)
            structlog.contextvars.bind_contextvars(game_id=game_id, seat=chosen)
            logger.info("player joined game", player_name=player_name)

            joined = GameJoinedMessage(
                game_id=game_id,
                seat=chosen,
                player_name=player_name,
                snapshot=game.game.get_player_view(chosen).model_dump(mode="json"),
            )
            with contextlib.suppress(RuntimeError, OSError):
                await connection.send_message(joined.model_dump())
            await broadcast_to_players(
                game.players,
                PlayerJoinedMessage(player_name=player_name, seat=chosen).model_dump(),
                exclude_connection_id=connection.connection_id,
            )
            await self._drive(game)

    async def leave_game(self, connection: ConnectionProtocol) -> None:
        """Detach a human; an automated player takes the seat while other humans remain."""
        player = self._players.get(connection.connection_id)
        if player is None or player.game_id is None:
            return
        game = self._registry.get(player.game_id)
        lock = self._game_locks.get(player.game_id)
        if game is None or lock is None:
            player.game_id = None
            player.seat = None
            return

        async with lock:
            seat = player.seat
            game.players.pop(connection.connection_id, None)
            player.game_id = None
            player.seat = None
            logger.info("player left game", player_name=player.name, seat=seat)
            if seat is not None and not game.is_empty:
                game.controller.add_ai_player(seat, self._new_ai_player(game.game, seat))
                await broadcast_to_players(
                    game.players,
                    PlayerLeftMessage(player_name=player.name, seat=seat).model_dump(),
                )
                await self._drive(game)

        await self._cleanup_game(game)

    # --- Actions ---

    async def handle_game_action(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        data: dict[str, Any],
    ) -> None:
        player = self._players.get(connection.connection_id)
        if player is None or player.game_id is None or player.seat is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_GAME, "You must join a game first")
            return

        game = self._registry.get(player.game_id)
        lock = self._game_locks.get(player.game_id)
        if game is None or lock is None:
            return

        structlog.contextvars.bind_contextvars(game_id=game.game_id, seat=player.seat)
        async with lock:
            try:
                outcome = game.game.handle_action(player.seat, action, data)
            except GameRuleError as e:
                logger.warning("game action rejected", action=action, error_code=e.code, reason=str(e))
                await self._send_error(connection, e.code, str(e))
                return
            await self._drive(game, outcome)

    async def next_round(self, connection: ConnectionProtocol) -> None:
        """Deal the next round once the current one has finished."""
        player = self._players.get(connection.connection_id)
        if player is None or player.game_id is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_GAME, "You must join a game first")
            return
        game = self._registry.get(player.game_id)
        lock = self._game_locks.get(player.game_id)
        if game is None or lock is None:
            return

        async with lock:
            try:
                game.game.next_round()
            except GameRuleError as e:
                await self._send_error(connection, e.code, str(e))
                return
            game.last_prompts.clear()
            logger.info("next round started", round_number=game.game.state.round_number)
            await self._broadcast_state(game, None)
            await self._drive(game)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(PongMessage().model_dump())

    async def _handle_ai_action(self, game_id: str, seat: int, generation: int) -> None:
        lock = self._game_locks.get(game_id)
        if lock is None:
            return

        async with lock:
            game = self._registry.get(game_id)
            if game is None:
                return
            mahjong = game.game
            if mahjong.generation != generation:
                logger.debug("stale automated action dropped", game_id=game_id, seat=seat, generation=generation)
                return

            decision = game.controller.get_turn_action(seat, mahjong)
            if decision is None:
                decision = game.controller.get_claim_response(seat, mahjong)
            if decision is None:
                return
            action, data = decision
            try:
                outcome = mahjong.handle_action(seat, action, data)
            except GameRuleError:
                logger.exception("automated action rejected", game_id=game_id, seat=seat, action=action)
                return
            await self._drive(game, outcome)

    # --- Broadcasting and prompting ---

    async def _drive(self, game: Game, outcome: ActionOutcome | None = None) -> None:
        """
        Publish an outcome and hand the game to whoever acts next.

        Must be called under the game lock. Loops while the next step is a
        human's draw, which the session performs on the human's behalf.
        """
        game.touch()
        while True:
            if outcome is not None:
                await self._broadcast_state(game, outcome)
                if game.game.phase == RoundPhase.FINISHED:
                    await self._broadcast_round_end(game)
                    return
            outcome = await self._prompt_next(game)
            if outcome is None:
                return

    @staticmethod
    def _hidden_draw(draw: DrawResult) -> dict[str, Any]:
        return {
            "type": draw.type,
            "seat": draw.seat,
            "is_replacement": draw.is_replacement,
            "bonus_tiles": draw.bonus_tiles,
            "wall_remaining": draw.wall_remaining,
        }

    @classmethod
    def _event_payload(cls, outcome: ActionOutcome, viewer_seat: int) -> dict[str, Any]:
        """
        Outcome as shown to one seat: other seats' drawn tiles are hidden.

        Covers draws nested in a claim resolution too (the replacement draw
        after a claimed kong, the draw that completes an unrobbed added kong).
        """
        if isinstance(outcome, DrawResult) and outcome.seat != viewer_seat:
            return cls._hidden_draw(outcome)
        payload = outcome.model_dump(mode="json")
        followup = outcome.followup if isinstance(outcome, ClaimResolution) else None
        if isinstance(followup, DrawResult) and followup.seat != viewer_seat:
            payload["followup"] = cls._hidden_draw(followup)
        return payload

    async def _broadcast_state(self, game: Game, outcome: ActionOutcome | None) -> None:
        for player in list(game.players.values()):
            if player.seat is None:
                continue
            message = GameStateMessage(
                event=self._event_payload(outcome, player.seat) if outcome is not None else None,
                snapshot=game.game.get_player_view(player.seat).model_dump(mode="json"),
            )
            with contextlib.suppress(RuntimeError, OSError):
                await player.connection.send_message(message.model_dump())

    async def _broadcast_round_end(self, game: Game) -> None:
        self._scheduler.cancel_game(game.game_id)
        result = game.game.round_result
        if result is None:  # pragma: no cover
            return
        logger.info("round ended", game_id=game.game_id, result_type=result.type)
        message = RoundEndedMessage(result=result.model_dump(mode="json")).model_dump()
        await broadcast_to_players(game.players, message)

    async def _send_prompt(self, game: Game, player: Player, key: tuple[Any, ...], message: dict[str, Any]) -> None:
        if player.seat is None or game.last_prompts.get(player.seat) == key:
            return
        game.last_prompts[player.seat] = key
        with contextlib.suppress(RuntimeError, OSError):
            await player.connection.send_message(message)

    async def _prompt_next(self, game: Game) -> ActionOutcome | None:
        """
        Prompt or schedule the seats that may act now.

        Returns the outcome of a draw made for a human, so the caller can
        publish it and continue; None once the game waits on someone.
        """
        mahjong = game.game
        if mahjong.phase == RoundPhase.CLAIM:
            self._prompt_claims(game)
            episode = mahjong.claim_episode
            if episode is None:  # pragma: no cover
                return None
            key = ("claim", episode.episode_type, episode.tile_id, episode.from_seat, mahjong.round_state.turn_count)
            for seat in episode.pending_seats:
                player = game.player_at_seat(seat)
                if player is None:
                    continue
                message = ClaimAvailableMessage(
                    seat=seat,
                    episode_type=episode.episode_type,
                    tile_id=episode.tile_id,
                    from_seat=episode.from_seat,
                    options=[option.model_dump(mode="json") for option in mahjong.claim_options_for(seat)],
                )
                await self._send_prompt(game, player, key, message.model_dump())
            return None

        if mahjong.phase != RoundPhase.PLAYING:
            return None

        seat = mahjong.current_player_seat
        if game.controller.is_ai_player(seat):
            self._scheduler.schedule(game.game_id, seat, mahjong.generation, self._ai_delay(game))
            return None

        player = game.player_at_seat(seat)
        if player is None:
            logger.debug("waiting for a human to join", game_id=game.game_id, seat=seat)
            return None

        if mahjong.player(seat).effective_tile_count == HAND_SIZE_BEFORE_DRAW:
            return mahjong.draw_tile(seat)

        round_state = mahjong.round_state
        message = YourTurnMessage(
            seat=seat,
            drawn_tile=round_state.last_drawn_tile,
            can_win=mahjong.can_declare_win(seat),
            kong_options=[option.model_dump(mode="json") for option in mahjong.find_kong_options(seat)],
        )
        key = ("turn", round_state.turn_count, len(mahjong.player(seat).melds))
        await self._send_prompt(game, player, key, message.model_dump())
        return None

    def _prompt_claims(self, game: Game) -> None:
        """Schedule every automated seat that still owes a claim response."""
        mahjong = game.game
        episode = mahjong.claim_episode
        if episode is None:  # pragma: no cover
            return
        delay = self._ai_delay(game)
        for seat in episode.pending_seats:
            if game.controller.is_ai_player(seat):
                self._scheduler.schedule(game.game_id, seat, mahjong.generation, delay)

    # --- Errors ---

    async def close_game_on_error(self, connection: ConnectionProtocol) -> None:
        """
        Close all human connections of the connection's game after an unrecoverable error.

        The WebSocket disconnect handlers clean up session state when the
        connections close.
        """
        player = self._players.get(connection.connection_id)
        if player is None or player.game_id is None:
            return
        game = self._registry.get(player.game_id)
        if game is None:
            return
        self._scheduler.cancel_game(game.game_id)
        for p in list(game.players.values()):
            with contextlib.suppress(RuntimeError, OSError):
                await p.connection.close(code=1011, reason="internal_error")
