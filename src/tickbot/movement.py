"""Multi-waypoint walking with adaptive timeouts, replanning and stuck detection."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from tickbot.adapters.channel import CommandChannel, PathResult, Waypoint
from tickbot.adapters.state_source import StateSnapshotSource
from tickbot.config import Settings
from tickbot.config import settings as default_settings
from tickbot.journal import ActionReporter
from tickbot.results import ActionResult, FailureReason
from tickbot.waiter import ConditionTimeout, ConditionWaiter


@dataclass(slots=True)
class MovementOutcome:
    arrived: bool
    stopped_moving: bool
    x: int
    z: int


class LongRangePathSearch:
    """Finds a path toward a distant goal when the planner returns nothing.

    The path query gives up on goals far outside the loaded region, so this
    probes shorter points along the straight line to the goal, each at a few
    sideways offsets, and returns the first one that yields waypoints.
    """

    def __init__(
        self,
        channel: CommandChannel,
        *,
        distances: tuple[int, ...] = (60, 40, 25),
        offsets: tuple[int, ...] = (0, 15, -15, 30, -30),
        max_waypoints: int = 500,
    ) -> None:
        self._channel = channel
        self._distances = distances
        self._offsets = offsets
        self._max_waypoints = max_waypoints

    async def find(self, from_x: int, from_z: int, goal_x: int, goal_z: int) -> PathResult | None:
        distance = math.dist((from_x, from_z), (goal_x, goal_z))
        if distance == 0:
            return None

        dir_x = (goal_x - from_x) / distance
        dir_z = (goal_z - from_z) / distance
        perp_x, perp_z = -dir_z, dir_x

        for step in self._distances:
            if step >= distance:
                continue
            for offset in self._offsets:
                probe_x = round(from_x + dir_x * step + perp_x * offset)
                probe_z = round(from_z + dir_z * step + perp_z * offset)
                result = await self._channel.send_find_path(probe_x, probe_z, self._max_waypoints)
                if result.waypoints:
                    return result
        return None


class MovementPlanner:
    """Drives ``walk_to`` as plan → walk segment → check arrival, with bounded replanning."""

    def __init__(
        self,
        channel: CommandChannel,
        source: StateSnapshotSource,
        waiter: ConditionWaiter,
        *,
        settings: Settings | None = None,
        path_search: LongRangePathSearch | None = None,
        reporter: ActionReporter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._channel = channel
        self._source = source
        self._waiter = waiter
        self._settings = settings or default_settings
        self._path_search = path_search or LongRangePathSearch(
            channel,
            distances=tuple(self._settings.intermediate_distances),
            offsets=tuple(self._settings.perpendicular_offsets),
            max_waypoints=self._settings.path_max_waypoints,
        )
        self._reporter = reporter or ActionReporter()
        self._logger = logger or logging.getLogger("tickbot.movement")

    async def walk_to(self, x: int, z: int, tolerance: int | None = None) -> ActionResult:
        """Walk until within ``tolerance`` tiles of (x, z); never raises for a failed walk."""
        tolerance = self._settings.arrival_tolerance if tolerance is None else tolerance
        result = await self._walk(x, z, tolerance)
        snapshot = self._source.get_state()
        return self._reporter.report("walk_to", result, snapshot.tick if snapshot else None)

    async def wait_for_movement_complete(
        self, target_x: int, target_z: int, tolerance: int = 3
    ) -> MovementOutcome:
        """Poll until arrival, a stall longer than the stuck threshold, or an adaptive timeout."""
        snapshot = self._source.get_state()
        if snapshot is None or snapshot.player is None:
            return MovementOutcome(arrived=False, stopped_moving=True, x=0, z=0)

        cfg = self._settings
        last_x, last_z = snapshot.player.x, snapshot.player.z
        distance = snapshot.distance_to(target_x, target_z)
        expected = distance / cfg.tiles_per_second
        max_timeout = max(cfg.min_movement_timeout_seconds, expected * cfg.movement_timeout_margin)

        started = self._waiter.now()
        last_move = started
        while self._waiter.now() - started < max_timeout:
            await self._waiter.pause(cfg.poll_interval_seconds)

            state = self._source.get_state()
            if state is None or state.player is None:
                return MovementOutcome(arrived=False, stopped_moving=True, x=last_x, z=last_z)

            current_x, current_z = state.player.x, state.player.z
            if state.distance_to(target_x, target_z) <= tolerance:
                return MovementOutcome(arrived=True, stopped_moving=False, x=current_x, z=current_z)

            if (current_x, current_z) != (last_x, last_z):
                last_move = self._waiter.now()
                last_x, last_z = current_x, current_z
            elif self._waiter.now() - last_move > cfg.stuck_threshold_seconds:
                return MovementOutcome(arrived=False, stopped_moving=True, x=current_x, z=current_z)

        final = self._source.get_state()
        if final is not None and final.player is not None:
            last_x, last_z = final.player.x, final.player.z
        return MovementOutcome(
            arrived=math.dist((target_x, target_z), (last_x, last_z)) <= tolerance,
            stopped_moving=True,
            x=last_x,
            z=last_z,
        )

    async def _walk(self, x: int, z: int, tolerance: int) -> ActionResult:
        cfg = self._settings
        start = self._source.get_state()
        if start is None or start.player is None:
            return ActionResult.fail(FailureReason.NO_STATE, "No player state")

        if start.distance_to(x, z) <= tolerance:
            return ActionResult.ok(f"Already at ({x}, {z})", Waypoint(start.player.x, start.player.z))

        stalled_attempts = 0
        last_x, last_z = start.player.x, start.player.z
        for attempt in range(cfg.max_path_queries):
            current = self._source.get_state()
            if current is None or current.player is None:
                return ActionResult.fail(FailureReason.NO_STATE, "Lost player state", Waypoint(last_x, last_z))

            current_x, current_z = current.player.x, current.player.z
            dist_to_goal = current.distance_to(x, z)
            if dist_to_goal <= tolerance:
                return ActionResult.ok(f"Arrived at ({current_x}, {current_z})", Waypoint(current_x, current_z))

            path = await self._channel.send_find_path(x, z, cfg.path_max_waypoints)
            if not path.waypoints and dist_to_goal > cfg.long_range_threshold:
                self._logger.info(
                    "walk_long_range_search",
                    extra={"goal": (x, z), "position": (current_x, current_z), "distance": dist_to_goal},
                )
                path = await self._path_search.find(current_x, current_z, x, z) or path

            if not path.success or not path.waypoints:
                return await self._direct_walk(x, z, tolerance)

            arrived = await self._walk_strides(path.waypoints, x, z, tolerance)
            if arrived is not None:
                return arrived

            after = self._source.get_state()
            if after is not None and after.player is not None:
                last_x, last_z = after.player.x, after.player.z
            else:
                last_x, last_z = current_x, current_z
            new_dist = math.dist((x, z), (last_x, last_z))
            if new_dist <= tolerance:
                return ActionResult.ok(f"Arrived at ({last_x}, {last_z})", Waypoint(last_x, last_z))

            if dist_to_goal - new_dist < cfg.min_progress_tiles:
                stalled_attempts += 1
                self._logger.info(
                    "walk_replan_stalled",
                    extra={"attempt": attempt, "stalled_attempts": stalled_attempts, "position": (last_x, last_z)},
                )
                if stalled_attempts >= cfg.max_stalled_attempts:
                    return ActionResult.fail(
                        FailureReason.STUCK,
                        f"Stuck at ({last_x}, {last_z}) - cannot reach ({x}, {z})",
                        Waypoint(last_x, last_z),
                    )
            else:
                stalled_attempts = 0

        final = self._source.get_state()
        if final is not None and final.player is not None:
            last_x, last_z = final.player.x, final.player.z
        if math.dist((x, z), (last_x, last_z)) <= tolerance:
            return ActionResult.ok(f"Arrived at ({last_x}, {last_z})", Waypoint(last_x, last_z))
        return ActionResult.fail(
            FailureReason.WALK_FAILED,
            f"Could not reach ({x}, {z}) - stopped at ({last_x}, {last_z})",
            Waypoint(last_x, last_z),
        )

    async def _walk_strides(
        self, waypoints: list[Waypoint], goal_x: int, goal_z: int, tolerance: int
    ) -> ActionResult | None:
        """Walk every ``waypoint_stride``-th waypoint; a result ends ``walk_to``, ``None`` means replan."""
        cfg = self._settings
        stride = max(1, cfg.waypoint_stride)
        last_index = len(waypoints) - 1
        walked_last = False

        for index in range(min(stride - 1, last_index), len(waypoints), stride):
            waypoint = waypoints[index]
            await self._channel.send_walk(waypoint.x, waypoint.z, True)
            outcome = await self.wait_for_movement_complete(waypoint.x, waypoint.z, cfg.arrival_tolerance)

            state = self._source.get_state()
            if state is None or state.player is None:
                return ActionResult.fail(
                    FailureReason.NO_STATE, "Lost connection during walk", Waypoint(outcome.x, outcome.z)
                )

            if math.dist((goal_x, goal_z), (outcome.x, outcome.z)) <= tolerance:
                return ActionResult.ok(f"Arrived at ({outcome.x}, {outcome.z})", Waypoint(outcome.x, outcome.z))

            if outcome.stopped_moving and not outcome.arrived:
                self._logger.info(
                    "walk_segment_stalled",
                    extra={"waypoint": (waypoint.x, waypoint.z), "position": (outcome.x, outcome.z)},
                )
                return None
            walked_last = index == last_index

        if not walked_last:
            final_waypoint = waypoints[last_index]
            await self._channel.send_walk(final_waypoint.x, final_waypoint.z, True)
            await self.wait_for_movement_complete(final_waypoint.x, final_waypoint.z, cfg.arrival_tolerance)
        return None

    async def _direct_walk(self, x: int, z: int, tolerance: int) -> ActionResult:
        self._logger.info("walk_direct_fallback", extra={"goal": (x, z)})
        await self._channel.send_walk(x, z, True)
        try:
            snapshot = await self._waiter.wait_for_condition(
                lambda s: s.player is not None and math.dist((x, z), (s.player.x, s.player.z)) <= tolerance,
                self._settings.direct_walk_timeout_seconds,
            )
        except ConditionTimeout:
            return ActionResult.fail(FailureReason.WALK_FAILED, f"No path found to ({x}, {z})")
        return ActionResult.ok(f"Arrived at ({x}, {z})", Waypoint(snapshot.player.x, snapshot.player.z))
