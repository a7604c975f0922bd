"""
Scoring Service - voting rules, tallies and leaderboards.

Voters never see or vote for their own submission, vote at most once per
round, and every vote received adds one point to the submission's author.
"""

import logging
import random
from typing import Any, Dict, List, Optional

from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.core.models import Player, Room, Submission

logger = logging.getLogger(__name__)


class ScoringService:
    """Voting and scoring operations. Callers hold the room lock."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def voting_targets(self, room: Room, player_id: str) -> List[Submission]:
        """Submissions a player may vote for: everything except their own."""
        return [s for s in room.submissions if s.player_id != player_id]

    def build_voting_sets(self, room: Room) -> Dict[str, List[Submission]]:
        """A shuffled, self-excluding list of submissions for every player."""
        voting_sets = {}
        for player in room.players:
            targets = self.voting_targets(room, player.id)
            self._rng.shuffle(targets)
            voting_sets[player.id] = targets
        return voting_sets

    def eligible_voters(self, room: Room) -> List[Player]:
        """Players with at least one submission they can vote for."""
        return [p for p in room.players if self.voting_targets(room, p.id)]

    def all_votes_in(self, room: Room) -> bool:
        expected = {p.id for p in self.eligible_voters(room)}
        return bool(expected) and expected <= room.voted_players

    def cast_vote(self, room: Room, voter_id: str, submission_id: str) -> Submission:
        """
        Record a vote.

        Raises:
            StateConflictError: ALREADY_VOTED or INVALID_TARGET
        """
        if voter_id in room.voted_players:
            raise StateConflictError(ErrorCode.ALREADY_VOTED, 'You have already voted this round')

        submission = room.find_submission(submission_id)
        if submission is None:
            raise StateConflictError(
                ErrorCode.INVALID_TARGET,
                'That submission does not exist',
                {'submission_id': submission_id}
            )

        if submission.player_id == voter_id:
            raise StateConflictError(ErrorCode.INVALID_TARGET, 'You cannot vote for your own meme')

        submission.votes += 1
        room.voted_players.add(voter_id)
        room.ballots[voter_id] = submission.id
        logger.debug(f"Vote in room {room.code}: {voter_id} -> {submission.id}")
        return submission

    def apply_round_scores(self, room: Room) -> Dict[str, int]:
        """
        Add each submission's votes to its author's cumulative score.

        Authors who already left the room are skipped.

        Returns:
            Points earned this round keyed by player id
        """
        round_points = {player.id: 0 for player in room.players}
        for submission in room.submissions:
            author = room.find_player(submission.player_id)
            if author is None:
                continue
            author.score += submission.votes
            round_points[author.id] += submission.votes

        logger.info(f"Scored round {room.current_round} in room {room.code}: {round_points}")
        return round_points

    def ranked_submissions(self, room: Room) -> List[Submission]:
        return sorted(room.submissions, key=lambda s: s.votes, reverse=True)

    def get_leaderboard(self, room: Room) -> List[Dict[str, Any]]:
        """
        Players by score descending. Ties keep join order and share a rank.
        """
        ordered = sorted(room.players, key=lambda p: p.score, reverse=True)
        leaderboard = []
        previous_score = None
        rank = 0
        for position, player in enumerate(ordered, start=1):
            if player.score != previous_score:
                rank = position
                previous_score = player.score
            leaderboard.append({
                'player_id': player.id,
                'name': player.name,
                'score': player.score,
                'rank': rank,
            })
        return leaderboard
