"""
Room State Presenter - turns Room records into client payloads.

Submissions are anonymous until results: voting payloads never carry the
author.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from mimclash.core.game_phases import GamePhase
from mimclash.core.models import Player, Room, Submission


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RoomStatePresenter:
    """Builds the payloads sent to clients."""

    def __init__(self, scoring_service):
        self.scoring_service = scoring_service

    def player_payload(self, room: Room, player: Player) -> Dict[str, Any]:
        return {
            'id': player.id,
            'name': player.name,
            'score': player.score,
            'online': player.online,
            'is_host': room.is_host(player.id),
            'last_seen': _iso(player.last_seen),
        }

    def player_list(self, room: Room) -> List[Dict[str, Any]]:
        return [self.player_payload(room, player) for player in room.players]

    def submission_payload(self, submission: Submission, reveal: bool = False) -> Dict[str, Any]:
        """
        Args:
            reveal: Include author and vote count (results only)
        """
        payload: Dict[str, Any] = {'id': submission.id}
        if submission.is_image:
            payload['image_data'] = submission.image_data
        else:
            payload.update(submission.text_fields or {})
        if reveal:
            payload['player_id'] = submission.player_id
            payload['player_name'] = submission.player_name
            payload['votes'] = submission.votes
        return payload

    def chat_log(self, room: Room) -> List[Dict[str, str]]:
        return [message.to_dict() for message in room.chat_log]

    def room_snapshot(self, room: Room, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """Full room view for a joining or reconnecting player."""
        snapshot = {
            'room_code': room.code,
            'players': self.player_list(room),
            'host_id': room.host.id if room.host else None,
            'phase': room.phase.value,
            'round': room.current_round,
            'max_rounds': room.max_rounds,
            'settings': room.settings.to_dict(),
            'scores': room.scores,
            'chat_log': self.chat_log(room),
            'situation_card': room.situation_card.to_dict() if room.situation_card else None,
            'round_start_time': _iso(room.round_start_time),
            'phase_deadline': _iso(room.phase_deadline),
            'submission_count': len(room.submissions),
            'available_cards': len(room.available_cards),
            'used_cards': len(room.used_cards),
        }
        if viewer_id is not None:
            snapshot['has_submitted'] = room.has_submitted(viewer_id)
            snapshot['has_voted'] = viewer_id in room.voted_players
            if room.phase == GamePhase.VOTING and not snapshot['has_voted']:
                snapshot['voting_submissions'] = [
                    self.submission_payload(s) for s in self.scoring_service.voting_targets(room, viewer_id)
                ]
        return snapshot

    def heartbeat(self, room: Room) -> Dict[str, Any]:
        return {
            'timestamp': datetime.now().isoformat(),
            'players_online': sum(1 for p in room.players if p.online),
            'total_players': len(room.players),
        }

    def round_started(self, room: Room) -> Dict[str, Any]:
        return {
            'round': room.current_round,
            'max_rounds': room.max_rounds,
            'card': room.situation_card.to_dict() if room.situation_card else None,
            'submission_seconds': room.settings.submission_seconds,
            'submission_deadline': _iso(room.phase_deadline),
            'round_start_time': _iso(room.round_start_time),
            'available_cards': len(room.available_cards),
            'used_cards': len(room.used_cards),
        }

    def voting_started(self, room: Room, targets: List[Submission]) -> Dict[str, Any]:
        return {
            'submissions': [self.submission_payload(s) for s in targets],
            'voting_seconds': room.settings.voting_seconds,
            'voting_deadline': _iso(room.phase_deadline),
            'total_submissions': len(room.submissions),
            'players_count': len(room.players),
        }

    def round_results(self, room: Room, round_points: Dict[str, int]) -> Dict[str, Any]:
        return {
            'round': room.current_round,
            'max_rounds': room.max_rounds,
            'card': room.situation_card.to_dict() if room.situation_card else None,
            'submissions': [self.submission_payload(s, reveal=True)
                            for s in self.scoring_service.ranked_submissions(room)],
            'round_points': round_points,
            'scores': room.scores,
            'leaderboard': self.scoring_service.get_leaderboard(room),
            'is_final_round': room.current_round >= room.max_rounds,
        }

    def status_cards(self, room: Room) -> Dict[str, Any]:
        return {
            'available_cards': [card.to_dict() for card in room.available_cards],
            'used_cards': [card.to_dict() for card in room.used_cards],
            'current_card': room.situation_card.to_dict() if room.situation_card else None,
        }
