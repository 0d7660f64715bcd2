"""Campaign game engine.

The engine turns one :class:`~crawl_engine.models.actions.PlayerAction`
into a new, consistent game state. It owns the state machine

    exploration -> investigation_prompt -> {exploration | combat}
    combat (loop) -> {exploration | game_over | victory}

and coordinates the dice, the stat calculator, the transient combat and
investigation stores, the narrator and the repository.

Ordering inside a turn:
1. Ownership and phase validation, before anything is touched.
2. Narrator calls and dice rolls.
3. All durable writes inside one ``repository.transaction()``.
4. Transient stores are updated only after the transaction committed, so
   a failed write leaves the snapshot and prompt intact for a retry.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass

from crawl_engine.core.config import GameSettings, get_settings
from crawl_engine.core.constants import (
    ACTION_FAILED_MESSAGE,
    CAMPAIGN_ENDED_MESSAGE,
    DEFEAT_MESSAGE,
    MIN_DAMAGE,
    OPENING_MESSAGE,
    PREVIEW_MESSAGES,
    VICTORY_MESSAGE,
)
from crawl_engine.core.exceptions import (
    ActionProcessingFailedError,
    CampaignForbiddenError,
    CampaignNotFoundError,
    InvalidActionError,
    ItemNotAvailableError,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from crawl_engine.core.logging import get_logger, turn_context
from crawl_engine.engine import encounters
from crawl_engine.engine.combat_store import (
    CombatSessionStore,
    consumed_item_ids,
    effective_attack,
    effective_defense,
)
from crawl_engine.engine.dice import DiceRoller, RollOutcome
from crawl_engine.engine.investigation import PendingInvestigationStore
from crawl_engine.engine.loadout import (
    Loadout,
    apply_stat_delta,
    effective_max_health,
    effective_stats,
    load_loadout,
    set_health,
    stat_value,
)
from crawl_engine.engine.locks import KeyedLock
from crawl_engine.engine.phases import ALLOWED_ACTIONS, choices_for, derive_phase
from crawl_engine.engine.recovery import build_snapshot, recover_snapshot
from crawl_engine.engine.rewards import apply_rewards, describe_rewards, plan_rewards
from crawl_engine.engine.stat_calc import apply_roll
from crawl_engine.models.actions import (
    CombatResult,
    GameServiceResponse,
    GameState,
    PendingInvestigation,
    PlayerAction,
)
from crawl_engine.models.combat import CombatSnapshot
from crawl_engine.models.enums import (
    ActionType,
    CampaignState,
    CombatOutcome,
    EventType,
    GamePhase,
    RollClassification,
    StatType,
)
from crawl_engine.models.events import (
    CampaignStartEventData,
    CombatEventData,
    DeclinedEventData,
    DescriptiveEventData,
    EquipEventData,
    InvestigationEventData,
    ItemDropEventData,
    RewardSummary,
)
from crawl_engine.models.records import (
    Campaign,
    Character,
    CharacterDraft,
    Enemy,
    GameEvent,
    Item,
    ItemDraft,
)
from crawl_engine.narrator.base import Narrator, NarratorContext, RecentEvent
from crawl_engine.narrator.resilient import ResilientNarrator
from crawl_engine.storage.repository import GameRepository


logger = get_logger(__name__)

_Handler = Callable[[Campaign, PlayerAction], GameServiceResponse]


@dataclass(frozen=True)
class _EventPlan:
    """Narrated next event, chosen before anything is written."""

    event_type: EventType
    message: str
    enemy: Enemy | None = None
    loot: ItemDraft | None = None


@dataclass(frozen=True)
class _CommittedEvent:
    """A written event and the transient state it opens."""

    message: str
    item_found: Item | None = None
    snapshot: CombatSnapshot | None = None
    prompt: PendingInvestigation | None = None


class GameEngine:
    """State machine orchestrator for campaigns.

    Every public operation runs under the campaign's lock, so at most one
    mutation per campaign is in flight; different campaigns proceed
    independently.

    Args:
        repository: Durable storage.
        narrator: Text generator. Wrapped in a ResilientNarrator unless it
            already is one.
        settings: Game settings; read from the environment if omitted.
        dice: d20 roller.
        rng: Random generator for enemy tiers and forced event types.

    Example:
        >>> engine = GameEngine(InMemoryRepository(), OfflineNarrator())
        >>> state = engine.start_campaign(1, "Into the Deep", CharacterDraft(name="Ayla"))
        >>> engine.process_action(
        ...     PlayerAction(campaign_id=state.campaign_id, action_type="continue"),
        ...     account_id=1,
        ... ).choices
        [<ActionType.CONTINUE: 'continue'>]
    """

    def __init__(
        self,
        repository: GameRepository,
        narrator: Narrator | ResilientNarrator,
        *,
        settings: GameSettings | None = None,
        dice: DiceRoller | None = None,
        rng: random.Random | None = None,
        combat_store: CombatSessionStore | None = None,
        investigations: PendingInvestigationStore | None = None,
    ) -> None:
        self._repository = repository
        if isinstance(narrator, ResilientNarrator):
            self._narrator = narrator
        else:
            self._narrator = ResilientNarrator(
                narrator,
                timeout_seconds=get_settings().narrator.timeout_seconds,
            )
        self._settings = settings or get_settings().game
        self._dice = dice or DiceRoller()
        self._rng = rng or random.Random()
        self._combat = combat_store or CombatSessionStore()
        self._investigations = investigations or PendingInvestigationStore()
        self._locks = KeyedLock()
        self._handlers: dict[ActionType, _Handler] = {
            ActionType.CONTINUE: self._handle_continue,
            ActionType.INVESTIGATE: self._handle_investigate,
            ActionType.DECLINE: self._handle_decline,
            ActionType.ATTACK: self._handle_attack,
            ActionType.FLEE: self._handle_flee,
            ActionType.USE_ITEM_COMBAT: self._handle_use_item,
        }

        logger.info(
            "GameEngine initialized",
            boss_event_threshold=self._settings.boss_event_threshold,
            inventory_capacity=self._settings.inventory_capacity,
        )

    @property
    def combat_store(self) -> CombatSessionStore:
        return self._combat

    @property
    def investigations(self) -> PendingInvestigationStore:
        return self._investigations

    # =========================================================================
    # Public Operations
    # =========================================================================

    def process_action(self, action: PlayerAction, *, account_id: int) -> GameServiceResponse:
        """Process one player action.

        Args:
            action: The action to process.
            account_id: Account making the request.

        Returns:
            The response for the UI. Validation problems, missing items
            and storage failures are reported as ``success=False``.

        Raises:
            CampaignNotFoundError: If the campaign does not exist.
            CampaignForbiddenError: If the campaign belongs to another account.
            InvalidRollError: If a roll outside 1-20 reaches the calculator.
        """
        with turn_context(campaign_id=action.campaign_id, action_type=str(action.action_type)):
            with self._locks.hold(action.campaign_id):
                response = self._process_locked(action, account_id)
            logger.info(
                "Action processed",
                success=response.success,
                phase=str(response.game_state.phase) if response.game_state else None,
                error=response.error,
            )
            return response

    def get_game_state(self, campaign_id: int, *, account_id: int) -> GameState:
        """Read the current state without advancing the story.

        Repeated calls return the same phase and message. A fight
        interrupted by a restart is recovered here.

        Raises:
            CampaignNotFoundError: If the campaign does not exist.
            CampaignForbiddenError: If the campaign belongs to another account.
            ActionProcessingFailedError: If storage fails.
        """
        with self._locks.hold(campaign_id):
            try:
                campaign = self._load_campaign(campaign_id, account_id)
                self._recover_combat(campaign)
                return self._build_state(campaign)
            except StorageError as exc:
                raise self._processing_failed(campaign_id, exc) from exc

    def start_campaign(
        self,
        account_id: int,
        name: str,
        character: CharacterDraft,
    ) -> GameState:
        """Create a campaign, its character and the opening event.

        Raises:
            ValidationError: If the account already has the maximum number
                of campaigns or the starting equipment is invalid.
            ActionProcessingFailedError: If storage fails.
        """
        with self._locks.hold(("account", account_id)):
            try:
                limit = self._settings.campaign_limit_per_account
                if self._repository.count_campaigns(account_id) >= limit:
                    raise ValidationError(
                        f"Limit of {limit} campaigns per account exceeded",
                        field_name="account_id",
                        invalid_value=account_id,
                    )
                self._check_starting_equipment(character)

                with self._repository.transaction():
                    campaign, created = self._repository.create_campaign(
                        account_id, name, character
                    )
                    loadout = load_loadout(self._repository, created)
                    created = self._repository.update_character(
                        set_health(created, loadout, effective_max_health(created, loadout))
                    )
                    self._repository.save_event(
                        campaign.id,
                        OPENING_MESSAGE,
                        EventType.DESCRIPTIVE,
                        CampaignStartEventData(character_name=created.name),
                    )
            except StorageError as exc:
                raise self._processing_failed(None, exc) from exc

        logger.info("Campaign started", campaign_id=campaign.id, account_id=account_id)
        return self.get_game_state(campaign.id, account_id=account_id)

    def equip_item(
        self,
        campaign_id: int,
        equipment_id: int,
        *,
        account_id: int,
    ) -> GameServiceResponse:
        """Equip a catalog piece while exploring.

        Health is clamped to the new effective maximum.

        Raises:
            CampaignNotFoundError: If the campaign does not exist.
            CampaignForbiddenError: If the campaign belongs to another account.
        """
        with turn_context(campaign_id=campaign_id, action_type="equip"):
            with self._locks.hold(campaign_id):
                return self._equip_locked(campaign_id, equipment_id, account_id)

    def get_event_log(self, campaign_id: int, *, account_id: int) -> list[GameEvent]:
        """Full ordered event log of a campaign, for export.

        Raises:
            CampaignNotFoundError: If the campaign does not exist.
            CampaignForbiddenError: If the campaign belongs to another account.
            ActionProcessingFailedError: If storage fails.
        """
        with self._locks.hold(campaign_id):
            try:
                self._load_campaign(campaign_id, account_id)
                return self._repository.get_events(campaign_id)
            except StorageError as exc:
                raise self._processing_failed(campaign_id, exc) from exc

    # =========================================================================
    # Turn Processing
    # =========================================================================

    def _process_locked(self, action: PlayerAction, account_id: int) -> GameServiceResponse:
        campaign: Campaign | None = None
        try:
            campaign = self._load_campaign(action.campaign_id, account_id)
            if campaign.state.is_terminal:
                return self._terminal_response(campaign)
            self._recover_combat(campaign)
            self._validate(campaign, action)
            return self._handlers[action.action_type](campaign, action)
        except (ValidationError, ItemNotAvailableError) as exc:
            logger.info("Action rejected", reason=exc.message)
            return self._rejection(campaign, exc)
        except StorageError as exc:
            failure = self._processing_failed(action.campaign_id, exc)
            return self._failure_response(action.campaign_id, account_id, failure)

    def _load_campaign(self, campaign_id: int, account_id: int) -> Campaign:
        campaign = self._repository.get_campaign(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        if campaign.account_id != account_id:
            logger.warning("Campaign access denied", account_id=account_id)
            raise CampaignForbiddenError(campaign_id, account_id)
        return campaign

    def _recover_combat(self, campaign: Campaign) -> None:
        if campaign.state.is_terminal or self._combat.has(campaign.id):
            return
        snapshot = recover_snapshot(self._repository, campaign.id)
        if snapshot is not None:
            self._combat.create(snapshot)

    def _phase(self, campaign: Campaign) -> GamePhase:
        return derive_phase(
            campaign.state,
            in_combat=self._combat.has(campaign.id),
            prompt_pending=self._investigations.has(campaign.id),
        )

    def _validate(self, campaign: Campaign, action: PlayerAction) -> None:
        phase = self._phase(campaign)
        if action.action_type not in ALLOWED_ACTIONS[phase]:
            raise InvalidActionError(
                f"Cannot {action.action_type} right now",
                current_phase=str(phase),
                allowed_actions=[str(choice) for choice in choices_for(phase)],
            )
        if action.action_type is ActionType.USE_ITEM_COMBAT and (
            action.action_data is None or action.action_data.item_id is None
        ):
            raise ValidationError("Choose an item to use", field_name="item_id")

    # -------------------------------------------------------------------------
    # Exploration
    # -------------------------------------------------------------------------

    def _handle_continue(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        if self._investigations.has(campaign.id):
            return self._handle_decline(campaign, action)
        return self._next_event(campaign)

    def _next_event(self, campaign: Campaign) -> GameServiceResponse:
        """Generate and resolve the next exploration event."""
        plan = self._plan_event(campaign)
        with self._repository.transaction():
            committed = self._commit_event(campaign, plan)
        self._apply_event(committed)
        return self._respond(campaign, committed.message, item_found=committed.item_found)

    def _plan_event(
        self,
        campaign: Campaign,
        *,
        follows_event: bool = False,
        after_flee: bool = False,
    ) -> _EventPlan:
        """Choose and narrate the next exploration event without writing.

        Args:
            campaign: Campaign being played.
            follows_event: Another event is written ahead of this one in the
                same transaction, so numbering skips past it and the
                Descriptive streak is already broken.
            after_flee: The player just escaped a fight; the next event is
                never another one.

        Returns:
            The chosen event with its narrated message.
        """
        character, loadout = self._load_character(campaign.id)
        recent = self._repository.get_recent_events(
            campaign.id, self._settings.recent_event_window
        )
        last_number = recent[-1].event_number if recent else 0
        next_number = last_number + 1 + int(follows_event)
        context = self._context(campaign.id, character, loadout, recent, next_number)

        if after_flee:
            event_type = encounters.avoid_combat(
                self._narrator.generate_event_type(context), self._rng
            )
        elif encounters.should_force_boss(next_number, self._settings):
            event_type = EventType.COMBAT
        else:
            event_type = encounters.enforce_pacing(
                self._narrator.generate_event_type(context),
                [] if follows_event else recent,
                self._settings,
                self._rng,
            )
        logger.debug("Event type chosen", event_type=str(event_type), event_number=next_number)

        if event_type is EventType.ENVIRONMENTAL:
            description = self._narrator.generate_description(EventType.ENVIRONMENTAL, context)
            message = f"{PREVIEW_MESSAGES[EventType.ENVIRONMENTAL]}\n\n{description}"
            return _EventPlan(event_type, message)
        if event_type is EventType.COMBAT:
            enemy = encounters.select_enemy(
                self._repository, next_number, self._settings, self._rng
            )
            description = self._narrator.generate_description(
                EventType.COMBAT, context.model_copy(update={"enemy_name": enemy.name})
            )
            return _EventPlan(event_type, f"{description}\n\n{_encounter_line(enemy)}", enemy=enemy)
        if event_type is EventType.ITEM_DROP:
            loot = self._narrator.request_item_drop(context)
            message = self._narrator.generate_description(EventType.ITEM_DROP, context, loot)
            return _EventPlan(event_type, message, loot=loot)
        message = self._narrator.generate_description(EventType.DESCRIPTIVE, context)
        return _EventPlan(EventType.DESCRIPTIVE, message)

    def _commit_event(self, campaign: Campaign, plan: _EventPlan) -> _CommittedEvent:
        """Write a planned event. Must run inside ``repository.transaction()``."""
        if plan.event_type is EventType.ENVIRONMENTAL:
            prompt = PendingInvestigation(campaign_id=campaign.id, message=plan.message)
            return _CommittedEvent(plan.message, prompt=prompt)

        if plan.enemy is not None:
            enemy = plan.enemy
            self._repository.save_event(
                campaign.id,
                plan.message,
                EventType.COMBAT,
                CombatEventData(
                    phase="encounter",
                    enemy_id=enemy.id,
                    enemy_name=enemy.name,
                    is_boss=enemy.is_boss,
                ),
            )
            # Sees items removed earlier in the same transaction
            character, loadout = self._load_character(campaign.id)
            snapshot = build_snapshot(
                campaign.id,
                enemy,
                character,
                loadout,
                self._repository.get_inventory(campaign.id),
                is_boss=enemy.is_boss,
            )
            return _CommittedEvent(plan.message, snapshot=snapshot)

        if plan.loot is not None:
            loot = plan.loot
            message = plan.message
            item: Item | None = None
            inventory = self._repository.get_inventory(campaign.id)
            if len(inventory) < self._settings.inventory_capacity:
                item = self._repository.add_item_to_inventory(campaign.id, loot)
            else:
                message = f"{message}\n\nYour pack is full. You leave the {loot.name} behind."
            self._repository.save_event(
                campaign.id,
                message,
                EventType.ITEM_DROP,
                ItemDropEventData(
                    item_id=item.id if item else None,
                    item_name=loot.name,
                    stat=loot.stat_modified,
                    value=loot.stat_value,
                    added=item is not None,
                ),
            )
            return _CommittedEvent(message, item_found=item)

        self._repository.save_event(
            campaign.id, plan.message, EventType.DESCRIPTIVE, DescriptiveEventData()
        )
        return _CommittedEvent(plan.message)

    def _apply_event(self, committed: _CommittedEvent) -> None:
        """Publish a committed event to the transient stores."""
        if committed.prompt is not None:
            self._investigations.stash(committed.prompt)
        if committed.snapshot is not None:
            self._combat.create(committed.snapshot)
            logger.info(
                "Combat started",
                enemy=committed.snapshot.enemy.name,
                is_boss=committed.snapshot.is_boss,
            )

    # -------------------------------------------------------------------------
    # Investigation
    # -------------------------------------------------------------------------

    def _handle_investigate(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        character, loadout = self._load_character(campaign.id)
        recent = self._repository.get_recent_events(
            campaign.id, self._settings.recent_event_window
        )
        context = self._context(campaign.id, character, loadout, recent)

        boost = self._narrator.request_stat_boost(context, EventType.ENVIRONMENTAL)
        roll = self._dice.roll_classified()
        delta = apply_roll(roll.value, boost.stat_type, boost.base_value)
        updated = apply_stat_delta(character, loadout, boost.stat_type, delta)
        resulting = stat_value(updated, boost.stat_type)
        message = _investigation_line(roll, boost.stat_type, delta)
        defeated = updated.current_health == 0

        with self._repository.transaction():
            self._repository.update_character(updated)
            if defeated:
                message = f"{message}\n\n{DEFEAT_MESSAGE}"
            self._repository.save_event(
                campaign.id,
                message,
                EventType.ENVIRONMENTAL,
                InvestigationEventData(
                    roll=roll.value,
                    classification=roll.classification,
                    stat=boost.stat_type,
                    base_value=boost.base_value,
                    delta=delta,
                    resulting_value=resulting,
                ),
            )
            if defeated:
                campaign = self._repository.update_campaign(
                    campaign.model_copy(update={"state": CampaignState.GAME_OVER})
                )
        self._investigations.clear(campaign.id)

        logger.info(
            "Investigation resolved",
            roll=roll.value,
            stat=str(boost.stat_type),
            base_value=boost.base_value,
            delta=delta,
        )
        return self._respond(campaign, message)

    def _handle_decline(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        lead = "You decide to leave it be and press on."
        plan = self._plan_event(campaign, follows_event=True)
        with self._repository.transaction():
            self._repository.save_event(
                campaign.id, lead, EventType.ENVIRONMENTAL, DeclinedEventData()
            )
            committed = self._commit_event(campaign, plan)
        self._investigations.clear(campaign.id)
        self._apply_event(committed)
        return self._respond(
            campaign, f"{lead}\n\n{committed.message}", item_found=committed.item_found
        )

    # -------------------------------------------------------------------------
    # Combat
    # -------------------------------------------------------------------------

    def _handle_attack(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        snapshot = self._snapshot(campaign.id)
        roll = self._dice.roll_classified()
        damage = max(MIN_DAMAGE, effective_attack(snapshot) - snapshot.enemy.defense)
        enemy_health = max(0, snapshot.enemy.current_health - damage)
        line = _attack_line(roll, snapshot.enemy.name, damage)

        if enemy_health == 0:
            return self._conclude_victory(campaign, snapshot, roll, damage, line)
        return self._enemy_turn(
            campaign,
            snapshot,
            roll,
            lines=[line],
            damage_dealt=damage,
            enemy_health=enemy_health,
        )

    def _handle_flee(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        snapshot = self._snapshot(campaign.id)
        roll = self._dice.roll_classified()

        if roll.value < self._settings.flee_success_min_roll:
            line = f"You try to flee but the {snapshot.enemy.name} blocks your escape! (Roll: {roll.value})"
            return self._enemy_turn(
                campaign,
                snapshot,
                roll,
                lines=[line],
                damage_dealt=0,
                enemy_health=snapshot.enemy.current_health,
            )

        message = f"You escape from the {snapshot.enemy.name}! (Roll: {roll.value})"
        character, _ = self._load_character(campaign.id)
        plan = self._plan_event(campaign, follows_event=True, after_flee=True)
        with self._repository.transaction():
            consumed = self._remove_consumed(campaign.id, snapshot)
            self._repository.save_event(
                campaign.id,
                message,
                EventType.COMBAT,
                self._conclusion(snapshot, CombatOutcome.FLED, consumed),
            )
            committed = self._commit_event(campaign, plan)
        self._combat.clear(campaign.id)
        self._apply_event(committed)
        logger.info("Fled combat", enemy=snapshot.enemy.name, roll=roll.value)

        result = CombatResult(
            roll=roll.value,
            classification=roll.classification,
            enemy_health=snapshot.enemy.current_health,
            character_health=character.current_health,
            outcome=CombatOutcome.FLED,
        )
        return self._respond(
            campaign,
            f"{message}\n\n{committed.message}",
            combat_result=result,
            item_found=committed.item_found,
        )

    def _handle_use_item(self, campaign: Campaign, action: PlayerAction) -> GameServiceResponse:
        item_id = action.action_data.item_id if action.action_data else None
        if item_id is None:
            raise ValidationError("Choose an item to use", field_name="item_id")
        snapshot = self._snapshot(campaign.id)
        item = next((i for i in snapshot.inventory if i.id == item_id), None)
        if item is None:
            raise ItemNotAvailableError(item_id, details={"source": "combat_inventory"})

        remaining = list(snapshot.inventory)
        remaining.remove(item)
        after_use = snapshot.model_copy(update={"inventory": remaining})

        if item.stat_modified is StatType.HEALTH:
            character, loadout = self._load_character(campaign.id)
            updated = apply_stat_delta(character, loadout, StatType.HEALTH, item.stat_value)
            line = _item_line(item, updated.current_health - character.current_health)
            if updated.current_health == 0:
                return self._conclude_defeat(
                    campaign,
                    after_use,
                    [line],
                    CombatResult(
                        enemy_health=snapshot.enemy.current_health,
                        character_health=0,
                        character_defeated=True,
                        outcome=CombatOutcome.DEFEAT,
                    ),
                )
            with self._repository.transaction():
                self._repository.update_character(updated)
            self._combat.remove_one_item(campaign.id, item.id)
            self._combat.update_character_hp(campaign.id, updated.current_health)
            character_health = updated.current_health
        else:
            line = _item_line(item, item.stat_value)
            self._combat.remove_one_item(campaign.id, item.id)
            self._combat.apply_temporary_buff(campaign.id, item.stat_modified, item.stat_value)
            character_health = snapshot.character.current_health

        self._combat.append_log(campaign.id, line)
        logger.info("Item used in combat", item=item.name, stat=str(item.stat_modified))
        return self._respond(
            campaign,
            line,
            combat_result=CombatResult(
                enemy_health=snapshot.enemy.current_health,
                character_health=character_health,
            ),
        )

    def _enemy_turn(
        self,
        campaign: Campaign,
        snapshot: CombatSnapshot,
        roll: RollOutcome,
        *,
        lines: list[str],
        damage_dealt: int,
        enemy_health: int,
    ) -> GameServiceResponse:
        """Resolve the enemy's counterattack against durable health."""
        character, loadout = self._load_character(campaign.id)
        taken = max(MIN_DAMAGE, snapshot.enemy.attack - effective_defense(snapshot))
        updated = set_health(character, loadout, character.current_health - taken)
        lines = [*lines, f"The {snapshot.enemy.name} strikes back for {taken} damage!"]
        result = CombatResult(
            roll=roll.value,
            classification=roll.classification,
            damage_dealt=damage_dealt,
            damage_taken=taken,
            enemy_health=enemy_health,
            character_health=updated.current_health,
            character_defeated=updated.current_health == 0,
        )

        if updated.current_health == 0:
            fought = snapshot.model_copy(deep=True)
            fought.enemy.current_health = enemy_health
            return self._conclude_defeat(
                campaign,
                fought,
                lines,
                result.model_copy(update={"outcome": CombatOutcome.DEFEAT}),
            )

        with self._repository.transaction():
            self._repository.update_character(updated)
        self._combat.update_enemy_hp(campaign.id, enemy_health)
        self._combat.update_character_hp(campaign.id, updated.current_health)
        for line in lines:
            self._combat.append_log(campaign.id, line)
        return self._respond(campaign, "\n".join(lines), combat_result=result)

    def _conclude_defeat(
        self,
        campaign: Campaign,
        snapshot: CombatSnapshot,
        lines: list[str],
        result: CombatResult,
    ) -> GameServiceResponse:
        character, loadout = self._load_character(campaign.id)
        message = "\n".join([*lines, DEFEAT_MESSAGE])
        with self._repository.transaction():
            self._repository.update_character(set_health(character, loadout, 0))
            consumed = self._remove_consumed(campaign.id, snapshot)
            self._repository.save_event(
                campaign.id,
                message,
                EventType.COMBAT,
                self._conclusion(snapshot, CombatOutcome.DEFEAT, consumed),
            )
            campaign = self._repository.update_campaign(
                campaign.model_copy(update={"state": CampaignState.GAME_OVER})
            )
        self._combat.clear(campaign.id)
        logger.info("Character defeated", enemy=snapshot.enemy.name)
        return self._respond(campaign, message, combat_result=result)

    def _conclude_victory(
        self,
        campaign: Campaign,
        snapshot: CombatSnapshot,
        roll: RollOutcome,
        damage: int,
        line: str,
    ) -> GameServiceResponse:
        character, loadout = self._load_character(campaign.id)
        reward_roll = self._dice.roll_classified()
        recent = self._repository.get_recent_events(
            campaign.id, self._settings.recent_event_window
        )
        context = self._context(campaign.id, character, loadout, recent).model_copy(
            update={"enemy_name": snapshot.enemy.name}
        )
        plan = plan_rewards(reward_roll, self._narrator, context)

        with self._repository.transaction():
            consumed = self._remove_consumed(campaign.id, snapshot)
            applied = apply_rewards(
                self._repository,
                plan,
                character,
                loadout,
                inventory_capacity=self._settings.inventory_capacity,
            )
            lines = [line, f"The {snapshot.enemy.name} is defeated!", describe_rewards(applied.summary)]
            if snapshot.is_boss:
                lines.append(VICTORY_MESSAGE)
            message = "\n".join(lines)
            self._repository.save_event(
                campaign.id,
                message,
                EventType.COMBAT,
                self._conclusion(snapshot, CombatOutcome.VICTORY, consumed, applied.summary),
            )
            if snapshot.is_boss:
                campaign = self._repository.update_campaign(
                    campaign.model_copy(update={"state": CampaignState.COMPLETED})
                )
        self._combat.clear(campaign.id)
        logger.info(
            "Enemy defeated",
            enemy=snapshot.enemy.name,
            is_boss=snapshot.is_boss,
            reward_roll=reward_roll.value,
        )

        result = CombatResult(
            roll=roll.value,
            classification=roll.classification,
            damage_dealt=damage,
            enemy_health=0,
            character_health=applied.character.current_health,
            enemy_defeated=True,
            outcome=CombatOutcome.VICTORY,
            reward=applied.summary,
        )
        return self._respond(campaign, message, combat_result=result, item_found=applied.item)

    def _remove_consumed(self, campaign_id: int, snapshot: CombatSnapshot) -> list[int]:
        consumed = consumed_item_ids(snapshot)
        for item_id in consumed:
            self._repository.remove_item_from_inventory(campaign_id, item_id)
        return consumed

    @staticmethod
    def _conclusion(
        snapshot: CombatSnapshot,
        outcome: CombatOutcome,
        consumed: list[int],
        reward: RewardSummary | None = None,
    ) -> CombatEventData:
        return CombatEventData(
            phase="conclusion",
            enemy_id=snapshot.enemy.enemy_id,
            enemy_name=snapshot.enemy.name,
            is_boss=snapshot.is_boss,
            outcome=outcome,
            reward=reward,
            consumed_item_ids=consumed,
        )

    def _snapshot(self, campaign_id: int) -> CombatSnapshot:
        snapshot = self._combat.get(campaign_id)
        if snapshot is None:
            raise InvalidActionError("You are not in combat", current_phase="exploration")
        return snapshot

    # -------------------------------------------------------------------------
    # Equipment
    # -------------------------------------------------------------------------

    def _equip_locked(
        self,
        campaign_id: int,
        equipment_id: int,
        account_id: int,
    ) -> GameServiceResponse:
        campaign: Campaign | None = None
        try:
            campaign = self._load_campaign(campaign_id, account_id)
            if campaign.state.is_terminal:
                return self._terminal_response(campaign)
            self._recover_combat(campaign)
            phase = self._phase(campaign)
            if phase is not GamePhase.EXPLORATION:
                raise InvalidActionError(
                    "Equipment can only be changed while exploring",
                    current_phase=str(phase),
                    allowed_actions=[str(choice) for choice in choices_for(phase)],
                )
            equipment = self._repository.get_equipment(equipment_id)
            if equipment is None:
                raise ValidationError(
                    "Unknown equipment",
                    field_name="equipment_id",
                    invalid_value=equipment_id,
                )

            message = f"You equip the {equipment.name} (+{equipment.bonus} {_SLOT_STAT[equipment.slot]})."
            with self._repository.transaction():
                character = self._repository.equip_item(campaign_id, equipment)
                loadout = load_loadout(self._repository, character)
                self._repository.update_character(
                    set_health(character, loadout, character.current_health)
                )
                self._repository.save_event(
                    campaign_id,
                    message,
                    EventType.DESCRIPTIVE,
                    EquipEventData(
                        equipment_id=equipment.id,
                        equipment_name=equipment.name,
                        slot=str(equipment.slot),
                        bonus=equipment.bonus,
                    ),
                )
            logger.info("Equipment changed", equipment=equipment.name, slot=str(equipment.slot))
            return self._respond(campaign, message)
        except ValidationError as exc:
            logger.info("Equip rejected", reason=exc.message)
            return self._rejection(campaign, exc)
        except StorageError as exc:
            failure = self._processing_failed(campaign_id, exc)
            return self._failure_response(campaign_id, account_id, failure)

    def _check_starting_equipment(self, character: CharacterDraft) -> None:
        for slot, equipment_id in (
            ("weapon", character.weapon_id),
            ("armour", character.armour_id),
            ("shield", character.shield_id),
        ):
            if equipment_id is None:
                continue
            equipment = self._repository.get_equipment(equipment_id)
            if equipment is None or str(equipment.slot) != slot:
                raise ValidationError(
                    f"Invalid starting {slot}",
                    field_name=f"{slot}_id",
                    invalid_value=equipment_id,
                )

    # =========================================================================
    # State & Responses
    # =========================================================================

    def _load_character(self, campaign_id: int) -> tuple[Character, Loadout]:
        character = self._repository.get_character(campaign_id)
        if character is None:
            raise RecordNotFoundError("Character", campaign_id)
        return character, load_loadout(self._repository, character)

    def _context(
        self,
        campaign_id: int,
        character: Character,
        loadout: Loadout,
        recent: list[GameEvent],
        next_number: int | None = None,
    ) -> NarratorContext:
        stats = effective_stats(character, loadout)
        if next_number is None:
            next_number = recent[-1].event_number + 1 if recent else 1
        return NarratorContext(
            campaign_id=campaign_id,
            character_name=character.name,
            current_health=character.current_health,
            max_health=stats.max_health,
            attack=stats.attack,
            defense=stats.defense,
            next_event_number=next_number,
            recent_events=[
                RecentEvent(
                    event_number=event.event_number,
                    event_type=event.event_type,
                    message=event.message,
                )
                for event in recent
            ],
        )

    def _build_state(self, campaign: Campaign, message: str | None = None) -> GameState:
        character, loadout = self._load_character(campaign.id)
        snapshot = self._combat.get(campaign.id)
        prompt = self._investigations.get(campaign.id)
        phase = derive_phase(
            campaign.state,
            in_combat=snapshot is not None,
            prompt_pending=prompt is not None,
        )
        latest = self._repository.get_recent_events(campaign.id, 1)

        if message is None:
            if phase is GamePhase.INVESTIGATION_PROMPT and prompt is not None:
                message = prompt.message
            elif phase is GamePhase.COMBAT and snapshot is not None and snapshot.combat_log:
                message = snapshot.combat_log[-1]
            elif latest:
                message = latest[-1].message
            else:
                message = OPENING_MESSAGE

        in_combat = snapshot is not None and phase is GamePhase.COMBAT
        return GameState(
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            campaign_state=campaign.state,
            phase=phase,
            message=message,
            character=character,
            effective_stats=effective_stats(
                character, loadout, snapshot.temporary_buffs if in_combat else None
            ),
            equipment=loadout.pieces(),
            inventory=(
                snapshot.inventory if in_combat else self._repository.get_inventory(campaign.id)
            ),
            enemy=snapshot.enemy if in_combat else None,
            temporary_buffs=snapshot.temporary_buffs if in_combat else None,
            combat_log=snapshot.combat_log if in_combat else [],
            event_count=latest[-1].event_number if latest else 0,
        )

    def _respond(
        self,
        campaign: Campaign,
        message: str,
        *,
        combat_result: CombatResult | None = None,
        item_found: Item | None = None,
    ) -> GameServiceResponse:
        state = self._build_state(campaign, message)
        return GameServiceResponse(
            success=True,
            game_state=state,
            message=message,
            choices=choices_for(state.phase),
            combat_result=combat_result,
            item_found=item_found,
        )

    def _terminal_response(self, campaign: Campaign) -> GameServiceResponse:
        return GameServiceResponse(
            success=False,
            game_state=self._build_state(campaign, CAMPAIGN_ENDED_MESSAGE),
            message=CAMPAIGN_ENDED_MESSAGE,
            choices=[],
            error="campaign_ended",
        )

    def _rejection(
        self,
        campaign: Campaign | None,
        exc: ValidationError | ItemNotAvailableError,
    ) -> GameServiceResponse:
        error = "item_not_available" if isinstance(exc, ItemNotAvailableError) else "validation_error"
        if campaign is None:
            return GameServiceResponse(
                success=False,
                message=exc.message,
                choices=[ActionType.CONTINUE],
                error=error,
            )
        state = self._build_state(campaign)
        return GameServiceResponse(
            success=False,
            game_state=state,
            message=exc.message,
            choices=choices_for(state.phase),
            error=error,
        )

    def _processing_failed(
        self,
        campaign_id: int | None,
        exc: StorageError,
    ) -> ActionProcessingFailedError:
        logger.error(
            "Action processing failed",
            campaign_id=campaign_id,
            error=str(exc),
            exc_info=True,
        )
        return ActionProcessingFailedError(
            "Action could not be completed",
            details={"campaign_id": campaign_id, "cause": type(exc).__name__},
        )

    def _failure_response(
        self,
        campaign_id: int,
        account_id: int,
        failure: ActionProcessingFailedError,
    ) -> GameServiceResponse:
        state: GameState | None
        try:
            campaign = self._load_campaign(campaign_id, account_id)
            state = self._build_state(campaign, ACTION_FAILED_MESSAGE)
        except StorageError:
            logger.warning("Game state unavailable after failure", campaign_id=campaign_id)
            state = None
        return GameServiceResponse(
            success=False,
            game_state=state,
            message=ACTION_FAILED_MESSAGE,
            choices=[ActionType.CONTINUE],
            error="action_processing_failed",
        )


# =============================================================================
# Narrative Lines
# =============================================================================

_SLOT_STAT = {"weapon": "attack", "armour": "max health", "shield": "defense"}


def _encounter_line(enemy: Enemy) -> str:
    prefix = "The master of this dungeon awakens! " if enemy.is_boss else ""
    return (
        f"{prefix}⚔️ {enemy.name} appears! "
        f"(HP: {enemy.health}, ATK: {enemy.attack}, DEF: {enemy.defense})"
    )


def _attack_line(roll: RollOutcome, enemy_name: str, damage: int) -> str:
    if roll.classification is RollClassification.CRITICAL_SUCCESS:
        opening = "CRITICAL HIT! You strike with perfect precision"
    elif roll.classification is RollClassification.CRITICAL_FAILURE:
        opening = "You stumble, but your blow still lands"
    else:
        opening = "You strike"
    return f"{opening} and deal {damage} damage to the {enemy_name}. (Roll: {roll.value})"


def _investigation_line(roll: RollOutcome, stat: StatType, delta: int) -> str:
    if delta == 0:
        outcome = "nothing changes"
    else:
        verb = "rises" if delta > 0 else "drops"
        outcome = f"your {stat} {verb} by {abs(delta)}"
    return f"You investigate... {outcome}. (Roll: {roll.value}, {roll.classification})"


def _item_line(item: Item, change: int) -> str:
    sign = "+" if change >= 0 else ""
    return f"You use the {item.name}: {sign}{change} {item.stat_modified}."


__all__ = ["GameEngine"]
