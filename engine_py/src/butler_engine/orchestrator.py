"""
Game orchestrator: applies actions, broadcasts state and paces agent turns.

Everything runs on one asyncio event loop. Mutations are synchronous, so no
locks are needed; delayed work is scheduled as tasks that re-check the room
when they fire and quietly drop out if the game has moved on.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from .bots.heuristic import HeuristicBot
from .constants import (
    ACTION_CONTINUE_FROM_CHAOS,
    ACTION_CONTINUE_FROM_EXECUTION,
    ACTION_CONTINUE_FROM_POLICY,
    ACTION_CONTINUE_FROM_VOTE,
    ACTION_EXAMINE,
    ACTION_INVESTIGATE,
    PHASE_CHAOS,
    PHASE_EXECUTION_RESULT,
    PHASE_POLICY_RESULT,
    PHASE_VOTE_RESULT,
    PHASE_VOTING,
)
from .errors import ROOM_NOT_FOUND
from .models import Room
from .phases import ActionResult, apply_action, pending_actors
from .rooms import RoomRegistry
from .rules import RuleConfig
from .serialization import sanitize_state
from .ws.events import (
    create_error_event,
    create_examine_result_event,
    create_investigation_result_event,
    create_state_event,
)

logger = logging.getLogger(__name__)

CONTINUE_ACTIONS = {
    PHASE_VOTE_RESULT: ACTION_CONTINUE_FROM_VOTE,
    PHASE_POLICY_RESULT: ACTION_CONTINUE_FROM_POLICY,
    PHASE_CHAOS: ACTION_CONTINUE_FROM_CHAOS,
    PHASE_EXECUTION_RESULT: ACTION_CONTINUE_FROM_EXECUTION,
}


@dataclass(frozen=True)
class ScheduledTask:
    """What a delayed task expects to find when it fires."""
    room_code: str
    expected_phase: str
    phase_serial: int
    actor_id: Optional[str] = None  # None for auto-continue timers

    @classmethod
    def for_room(cls, room: Room, actor_id: Optional[str] = None) -> 'ScheduledTask':
        return cls(room.code, room.state.phase, room.state.phase_serial, actor_id)

    def is_stale(self, room: Optional[Room]) -> bool:
        if room is None:
            return True
        if room.state.phase != self.expected_phase or room.state.phase_serial != self.phase_serial:
            return True
        if self.actor_id is not None:
            player = room.get_player(self.actor_id)
            if player is None or not player.is_agent:
                return True
            return self.actor_id not in pending_actors(room)
        return False


class GameOrchestrator:
    """
    Glue between the transport, the phase state machine and the agents.

    Args:
        registry: Rooms to act on
        manager: Connection manager with an async
            ``send_to_player(room_code, player_id, message)``
        rules: Pacing configuration (agent delays and display pauses)
        rng: Random source for agent delays
    """

    def __init__(
        self,
        registry: RoomRegistry,
        manager,
        rules: Optional[RuleConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self.registry = registry
        self.manager = manager
        self.rules = rules or registry.rules
        self.rng = rng or random.Random()
        self._tasks: Set[asyncio.Task] = set()
        self._scheduled: Set[ScheduledTask] = set()

    @property
    def pending_task_count(self) -> int:
        return len(self._tasks)

    # Outbound

    def state_frames(self, room: Room) -> List[Tuple[str, Dict[str, Any]]]:
        """Per-player state frames, all built from one snapshot of the room."""
        frames = []
        for player in room.human_players():
            if not player.connected:
                continue
            event = create_state_event(sanitize_state(room, player.id))
            frames.append((player.id, event.model_dump(mode="json")))
        return frames

    async def broadcast(self, room: Room):
        frames = self.state_frames(room)
        for player_id, frame in frames:
            await self.manager.send_to_player(room.code, player_id, frame)

    async def send_error(self, room_code: str, player_id: str, code: str, message: str):
        event = create_error_event(code, message)
        await self.manager.send_to_player(room_code, player_id, event.model_dump(mode="json"))

    async def _send_private(self, room: Room, actor_id: str, action_type: str, private: Dict[str, Any]):
        if action_type == ACTION_INVESTIGATE:
            event = create_investigation_result_event(**private)
        elif action_type == ACTION_EXAMINE:
            event = create_examine_result_event(**private)
        else:
            return
        await self.manager.send_to_player(room.code, actor_id, event.model_dump(mode="json"))

    # Actions

    async def handle_action(
        self,
        room_code: str,
        actor_id: Optional[str],
        action_type: str,
        data: Optional[Dict[str, Any]] = None
    ) -> ActionResult:
        """
        Apply a human action and fan out the consequences.

        Ignored actions produce no traffic; rejected ones go back to the
        actor as an error frame; accepted ones broadcast state and schedule
        whatever comes next.
        """
        room = self.registry.get_room(room_code)
        if room is None:
            result = ActionResult.rejected(ROOM_NOT_FOUND, "Room not found")
            if actor_id:
                await self.send_error(room_code, actor_id, result.error_code, result.error_message)
            return result

        result = apply_action(room, actor_id, action_type, data)

        if result.ignored:
            logger.debug(f"Ignored {action_type} from {actor_id} in room {room.code} ({room.state.phase})")
            return result
        if not result.success:
            await self.send_error(room.code, actor_id, result.error_code, result.error_message)
            return result

        if result.private and actor_id:
            await self._send_private(room, actor_id, action_type, result.private)
        if result.changed:
            await self.after_mutation(room)
        return result

    async def after_mutation(self, room: Room):
        """Broadcast the new state, then schedule the next agent or timer."""
        await self.broadcast(room)
        self.schedule_pending(room)

    # Scheduling

    def schedule_pending(self, room: Room):
        """
        Schedule every delayed step the room is waiting on.

        Agent actors get a thinking delay (voters staggered so ballots
        trickle in); continue-style phases get their display pause.
        """
        state = room.state
        if self.registry.get_room(room.code) is not room:
            return

        if state.phase in CONTINUE_ACTIONS:
            self._schedule(ScheduledTask.for_room(room), self.rules.continue_pause(state.phase))
            return

        waiting = pending_actors(room)
        agents = [p for p in room.players if p.is_agent and p.id in waiting]
        for position, agent in enumerate(agents):
            delay = self.rng.uniform(self.rules.agent_delay_min, self.rules.agent_delay_max)
            if state.phase == PHASE_VOTING:
                delay += position * self.rules.vote_stagger
            self._schedule(ScheduledTask.for_room(room, agent.id), delay)

    def _schedule(self, scheduled: ScheduledTask, delay: float):
        if scheduled in self._scheduled:
            return
        self._scheduled.add(scheduled)
        task = asyncio.create_task(self._fire(scheduled, delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fire(self, scheduled: ScheduledTask, delay: float):
        try:
            await asyncio.sleep(delay)
        finally:
            self._scheduled.discard(scheduled)

        room = self.registry.get_room(scheduled.room_code)
        if scheduled.is_stale(room):
            logger.debug(f"Dropped stale task {scheduled}")
            return

        try:
            if scheduled.actor_id is None:
                await self._run_continue(room)
            else:
                await self._run_agent(room, scheduled.actor_id)
        except Exception:
            logger.exception(f"Error running scheduled task {scheduled}")

    async def _run_continue(self, room: Room):
        action_type = CONTINUE_ACTIONS[room.state.phase]
        result = apply_action(room, None, action_type)
        if result.success:
            logger.info(f"Room {room.code}: auto {action_type} -> {room.state.phase}")
            await self.after_mutation(room)

    async def _run_agent(self, room: Room, agent_id: str):
        player = room.get_player(agent_id)
        bot = HeuristicBot(room, player, rng=room.state.rng)
        action = bot.choose_action()
        if action is None:
            logger.warning(f"Agent {player.name} has no move in phase {room.state.phase}")
            return

        logger.info(f"Agent {player.name} in room {room.code} chose {action}")
        result = apply_action(room, agent_id, action.type, action.data)
        if not result.success:
            logger.warning(f"Agent {player.name} action {action.type} was not accepted: {result}")
            return
        if result.changed:
            await self.after_mutation(room)

    async def shutdown(self):
        """Cancel every outstanding task."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._scheduled.clear()
