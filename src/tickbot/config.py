"""Runtime configuration for tickbot."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven timing, threshold and persistence settings."""

    model_config = SettingsConfigDict(env_prefix="TICKBOT_", env_file=".env", extra="ignore")

    app_name: str = "tickbot"
    log_level: str = "INFO"

    # Condition waiting
    poll_interval_seconds: float = 0.15
    dialog_cooldown_ticks: int = 3
    state_change_timeout_seconds: float = 2.0

    # Movement
    stuck_threshold_seconds: float = 0.6
    min_movement_timeout_seconds: float = 2.0
    tiles_per_second: float = 4.5
    movement_timeout_margin: float = 1.5
    arrival_tolerance: int = 3
    waypoint_stride: int = 5
    max_path_queries: int = 80
    path_max_waypoints: int = 500
    long_range_threshold: float = 40.0
    intermediate_distances: tuple[int, ...] = (60, 40, 25)
    perpendicular_offsets: tuple[int, ...] = (0, 15, -15, 30, -30)
    min_progress_tiles: float = 5.0
    max_stalled_attempts: int = 3
    direct_walk_timeout_seconds: float = 10.0

    # Interaction ranges (tiles)
    door_interaction_range: float = 2.0
    melee_range: float = 2.0
    attack_approach_range: float = Field(
        default=8.0,
        description="NPCs further than this are walked to before the attack command is sent.",
    )

    # Per-action verification timeouts
    attack_timeout_seconds: float = 5.0
    pickup_timeout_seconds: float = 10.0
    chop_timeout_seconds: float = 30.0
    burn_timeout_seconds: float = 30.0
    talk_timeout_seconds: float = 10.0
    equip_timeout_seconds: float = 5.0
    eat_timeout_seconds: float = 5.0
    cast_timeout_seconds: float = 3.0
    door_timeout_seconds: float = 5.0
    drop_timeout_seconds: float = 5.0
    use_on_loc_timeout_seconds: float = 10.0
    combat_style_timeout_seconds: float = 5.0
    max_dismiss_attempts: int = 10

    # Bank and shop
    open_modal_timeout_seconds: float = 10.0
    open_modal_slice_seconds: float = 2.0
    close_modal_timeout_seconds: float = 5.0
    close_retry_pause_seconds: float = 0.5
    transfer_timeout_seconds: float = 5.0
    sell_batch_timeout_seconds: float = 3.0
    sell_batch_max: int = 10

    # Generic waits
    skill_wait_timeout_seconds: float = 60.0
    inventory_wait_timeout_seconds: float = 30.0
    dialog_close_timeout_seconds: float = 30.0
    idle_timeout_seconds: float = 10.0

    classifier_rules_path: str | None = Field(
        default=None,
        description="Optional JSON file overriding the chat-message failure rules per action.",
    )
    journal_path: str | None = Field(
        default=None,
        description="Optional JSONL file receiving one record per finished action.",
    )


settings = Settings()
