"""
Game Flow Service - the round state machine.

    waiting -> playing -> voting -> results -> playing (next round)
                                            -> finished -> waiting

Player actions and timer expiry both end a phase, and both go through
`advance_phase(code, expected_phase)`, which does nothing unless the room is
still in the expected phase. Ending a phase early never runs the transition
inline: it schedules it after a short settle delay in the room's phase slot,
which cancels the phase timer in the same step.
"""

import logging
import random
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Dict, Optional

from mimclash.config.game_config import get_game_config
from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.core.game_phases import GamePhase
from mimclash.core.models import Player, Room, Submission
from mimclash.services.phase_scheduler import PHASE_SLOT

logger = logging.getLogger(__name__)

SUBMISSION_SETTLE = 'submission_settle'
VOTE_SETTLE = 'vote_settle'


class GameFlowService:
    """Drives rooms through rounds. Public methods expect the room lock to be held."""

    def __init__(self, room_manager, card_deck_service, scoring_service, phase_scheduler,
                 broadcast_service, rng: Optional[random.Random] = None):
        self.room_manager = room_manager
        self.card_deck_service = card_deck_service
        self.scoring_service = scoring_service
        self.phase_scheduler = phase_scheduler
        self.broadcast_service = broadcast_service
        self.game_config = get_game_config()
        self._rng = rng or random.Random()

    # Lobby

    def _require_host(self, room: Room, player: Player, action: str):
        if not room.is_host(player.id):
            raise StateConflictError(ErrorCode.NOT_HOST, f'Only the host can {action}')

    def _require_phase(self, room: Room, phase: GamePhase, action: str):
        if room.phase != phase:
            raise StateConflictError(
                ErrorCode.INVALID_PHASE,
                f'Cannot {action} while the room is {room.phase.value}',
                {'phase': room.phase.value, 'required_phase': phase.value}
            )

    def update_settings(self, room: Room, player: Player, changes: Dict[str, Any]) -> None:
        """Apply validated setting changes. Host only, lobby only."""
        self._require_host(room, player, 'change settings')
        self._require_phase(room, GamePhase.WAITING, 'change settings')

        settings = room.settings
        merged = settings.to_dict()
        merged.update(changes)
        if (merged['min_players_enabled'] and merged['max_players_enabled']
                and merged['min_players'] > merged['max_players']):
            raise StateConflictError(
                ErrorCode.INVALID_SETTINGS,
                'Minimum players cannot exceed maximum players',
                {'min_players': merged['min_players'], 'max_players': merged['max_players']}
            )

        for key, value in changes.items():
            setattr(settings, key, value)
        if 'enabled_categories' in changes:
            room.available_cards = []
        room.touch()

        logger.info(f"Settings updated in room {room.code}: {changes}")
        self.broadcast_service.broadcast_settings_updated(room)

    def start_game(self, room: Room, player: Player) -> None:
        """Host starts the game from the lobby."""
        self._require_host(room, player, 'start the game')
        self._require_phase(room, GamePhase.WAITING, 'start the game')

        min_players, max_players = self.game_config.effective_player_bounds(room.settings)
        count = len(room.players)
        if count < min_players:
            raise StateConflictError(
                ErrorCode.NOT_ENOUGH_PLAYERS,
                f'At least {min_players} players are needed to start',
                {'min_players': min_players, 'players': count}
            )
        if count > max_players:
            raise StateConflictError(
                ErrorCode.TOO_MANY_PLAYERS,
                f'At most {max_players} players can play',
                {'max_players': max_players, 'players': count}
            )

        room.current_round = 0
        room.available_cards = []
        room.round_results = []
        logger.info(f"Game started in room {room.code} with {count} players")
        self._start_round(room)

    # Round actions

    def submit(self, room: Room, player: Player, payload: Dict[str, Any]) -> Submission:
        """Accept a player's meme for the current round."""
        self._require_phase(room, GamePhase.PLAYING, 'submit')
        if room.has_submitted(player.id):
            raise StateConflictError(ErrorCode.ALREADY_SUBMITTED, 'You have already submitted this round')

        submission = Submission(
            player_id=player.id,
            player_name=player.name,
            image_data=payload.get('image_data'),
            text_fields=payload.get('text_fields'),
        )
        room.submissions.append(submission)
        room.touch()
        logger.info(f"Submission {len(room.submissions)}/{len(room.players)} in room {room.code} "
                    f"from {player.name}")

        self.broadcast_service.broadcast_submission_progress(room)
        self._check_submissions_complete(room)
        return submission

    def cast_vote(self, room: Room, player: Player, submission_id: str) -> Submission:
        self._require_phase(room, GamePhase.VOTING, 'vote')
        submission = self.scoring_service.cast_vote(room, player.id, submission_id)
        room.touch()

        expected = len(self.scoring_service.eligible_voters(room))
        self.broadcast_service.broadcast_vote_progress(room, expected)
        self._check_votes_complete(room)
        return submission

    def return_to_lobby(self, room: Room, player: Player) -> None:
        """A player opts to stay for another game after the final results."""
        self._require_phase(room, GamePhase.FINISHED, 'return to the lobby')
        if player.id in room.returning_to_lobby:
            return

        room.returning_to_lobby.append(player.id)
        room.touch()
        logger.info(f"{player.name} returning to lobby in room {room.code} "
                    f"({len(room.returning_to_lobby)}/{len(room.players)})")
        self.broadcast_service.broadcast_player_returning(room, player)
        self._check_everyone_returned(room)

    def handle_player_removed(self, room: Room) -> None:
        """Re-evaluate early completion after a player leaves for good."""
        if room.is_empty:
            self.phase_scheduler.cancel(room.code, PHASE_SLOT)
            return

        if room.phase == GamePhase.PLAYING:
            self.broadcast_service.broadcast_submission_progress(room)
            self._check_submissions_complete(room)
        elif room.phase == GamePhase.VOTING:
            self._refresh_voting(room)
        elif room.phase == GamePhase.FINISHED:
            self._check_everyone_returned(room)

    # Early completion

    def _settle_pending(self, room: Room, label: str) -> bool:
        handle = self.phase_scheduler.get_pending(room.code, PHASE_SLOT)
        return handle is not None and handle.label == label

    def _check_submissions_complete(self, room: Room):
        if not room.submissions or not all(room.has_submitted(p.id) for p in room.players):
            return
        if self._settle_pending(room, SUBMISSION_SETTLE):
            return
        logger.info(f"All submissions in for room {room.code}, voting starts shortly")
        self.phase_scheduler.schedule(
            room.code, self.game_config.submission_settle_seconds,
            partial(self.advance_phase, room.code, GamePhase.PLAYING),
            label=SUBMISSION_SETTLE,
        )

    def _check_votes_complete(self, room: Room):
        if not self.scoring_service.all_votes_in(room):
            return
        if self._settle_pending(room, VOTE_SETTLE):
            return
        logger.info(f"All votes in for room {room.code}, ending voting early")
        self.broadcast_service.broadcast_voting_ended_early(room)
        self.phase_scheduler.schedule(
            room.code, self.game_config.vote_settle_seconds,
            partial(self.advance_phase, room.code, GamePhase.VOTING),
            label=VOTE_SETTLE,
        )

    def resend_voting_set(self, room: Room, player: Player) -> None:
        """Give a reconnected voter the submissions they may still vote for."""
        if room.phase != GamePhase.VOTING or player.id in room.voted_players:
            return
        self.broadcast_service.send_voting_sets(room, self.scoring_service.build_voting_sets(room), [player.id])

    def _refresh_voting(self, room: Room):
        """Bring voting in line with a roster that just lost a player."""
        if not self.scoring_service.eligible_voters(room):
            logger.info(f"Nothing left to vote on in room {room.code}, ending voting")
            self.advance_phase(room.code, GamePhase.VOTING)
            return

        # Voters who have not voted yet, including any whose pick was withdrawn
        waiting = [p.id for p in room.players if p.id not in room.voted_players]
        self.broadcast_service.send_voting_sets(room, self.scoring_service.build_voting_sets(room), waiting)

        if self._settle_pending(room, VOTE_SETTLE) and not self.scoring_service.all_votes_in(room):
            remaining = max(0.0, (room.phase_deadline - datetime.now()).total_seconds())
            logger.info(f"Votes released in room {room.code}, voting resumes for {remaining:.0f}s")
            self.phase_scheduler.schedule(
                room.code, remaining,
                partial(self.advance_phase, room.code, GamePhase.VOTING),
                label='voting_timer',
            )
        self._check_votes_complete(room)

    def _check_everyone_returned(self, room: Room):
        if not room.players:
            return
        if not all(p.id in room.returning_to_lobby for p in room.players):
            return
        self.phase_scheduler.cancel(room.code, PHASE_SLOT)
        room.reset_for_new_game()
        logger.info(f"Everyone returned to the lobby in room {room.code}")
        self.broadcast_service.broadcast_returned_to_lobby(room)

    # Phase transitions

    def advance_phase(self, room_code: str, expected_phase: GamePhase) -> bool:
        """
        Leave `expected_phase` for whatever comes next.

        Returns:
            False (and changes nothing) if the room is gone or no longer in
            `expected_phase`
        """
        with self.room_manager.room_operation(room_code):
            room = self.room_manager.get_room(room_code)
            if room is None:
                logger.debug(f"Ignoring phase advance for missing room {room_code}")
                return False
            if room.phase != expected_phase:
                logger.debug(f"Ignoring stale advance from {expected_phase.value} in room {room_code} "
                             f"(now {room.phase.value})")
                return False

            if expected_phase == GamePhase.PLAYING:
                if room.submissions:
                    self._begin_voting(room)
                else:
                    logger.info(f"No submissions in room {room_code} round {room.current_round}, skipping voting")
                    self._enter_results(room)
            elif expected_phase == GamePhase.VOTING:
                self._enter_results(room)
            elif expected_phase == GamePhase.RESULTS:
                if room.current_round >= room.max_rounds:
                    self._end_game(room)
                else:
                    self._start_round(room)
            else:
                return False
            return True

    def _start_round(self, room: Room):
        card = self.card_deck_service.draw_card(room)
        now = datetime.now()

        room.current_round += 1
        room.phase = GamePhase.PLAYING
        room.situation_card = card
        room.submissions = []
        room.voted_players = set()
        room.ballots = {}
        room.round_start_time = now
        room.phase_deadline = now + timedelta(seconds=room.settings.submission_seconds)
        room.touch()

        logger.info(f"Round {room.current_round}/{room.max_rounds} started in room {room.code} with card {card.id}")
        self.broadcast_service.broadcast_round_started(room)
        self.phase_scheduler.schedule(
            room.code, room.settings.submission_seconds,
            partial(self.advance_phase, room.code, GamePhase.PLAYING),
            label='submission_timer',
        )

    def _begin_voting(self, room: Room):
        room.phase = GamePhase.VOTING
        room.voted_players = set()
        room.ballots = {}
        room.phase_deadline = datetime.now() + timedelta(seconds=room.settings.voting_seconds)
        room.touch()

        logger.info(f"Voting started in room {room.code} on {len(room.submissions)} submissions")
        self.broadcast_service.send_voting_sets(room, self.scoring_service.build_voting_sets(room))
        self.phase_scheduler.schedule(
            room.code, room.settings.voting_seconds,
            partial(self.advance_phase, room.code, GamePhase.VOTING),
            label='voting_timer',
        )

    def _enter_results(self, room: Room):
        if room.phase == GamePhase.RESULTS:
            return
        # Flip first: anything racing this transition now sees results
        room.phase = GamePhase.RESULTS
        display_seconds = self.game_config.results_display_seconds
        room.phase_deadline = datetime.now() + timedelta(seconds=display_seconds)

        round_points = self.scoring_service.apply_round_scores(room)
        room.round_results.append({
            'round': room.current_round,
            'card': room.situation_card.to_dict() if room.situation_card else None,
            'votes': {s.player_name: s.votes for s in room.submissions},
            'round_points': round_points,
        })
        room.touch()

        self.broadcast_service.broadcast_round_results(room, round_points)
        self.phase_scheduler.schedule(
            room.code, display_seconds,
            partial(self.advance_phase, room.code, GamePhase.RESULTS),
            label='results_display',
        )

    def _end_game(self, room: Room):
        room.phase = GamePhase.FINISHED
        room.returning_to_lobby = []
        handoff_seconds = self.game_config.host_handoff_seconds
        room.phase_deadline = datetime.now() + timedelta(seconds=handoff_seconds)
        room.touch()

        leaderboard = self.scoring_service.get_leaderboard(room)
        logger.info(f"Game finished in room {room.code}: {[(e['name'], e['score']) for e in leaderboard]}")
        self.broadcast_service.broadcast_game_finished(room, leaderboard)
        self.phase_scheduler.schedule(
            room.code, handoff_seconds,
            partial(self.transfer_host_if_absent, room.code),
            label='host_handoff',
        )

    def transfer_host_if_absent(self, room_code: str) -> Optional[Player]:
        """
        Give the host role to a player who stayed if the host did not.

        Returns:
            The new host, or None if nothing changed
        """
        with self.room_manager.room_operation(room_code):
            room = self.room_manager.get_room(room_code)
            if room is None or room.phase != GamePhase.FINISHED or not room.players:
                return None

            old_host = room.host
            if old_host.id in room.returning_to_lobby:
                return None

            candidates = [p for p in room.players if p.id in room.returning_to_lobby]
            if not candidates:
                logger.info(f"Host handoff in room {room_code}: nobody returned, host unchanged")
                return None

            new_host = self._rng.choice(candidates)
            room.players.remove(new_host)
            room.players.insert(0, new_host)
            room.touch()

            logger.info(f"Host of room {room_code} transferred from {old_host.name} to {new_host.name}")
            self.broadcast_service.broadcast_host_transferred(room, new_host, old_host)
            return new_host
