"""
Domain records for MimClash rooms.

A Room is the canonical state of one game. Players are kept in join order and
the first player is the host. Scores live on the Player record, so the score
map of a room is always keyed by exactly the players currently in it.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set

from mimclash.core.game_phases import GamePhase

ALL_CATEGORIES = ['work', 'traffic', 'relationship', 'technology', 'entertainment', 'daily']

CHAT_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class PlayerIdentity:
    """Durable identity of a player: stable across reconnects."""
    room_code: str
    name: str

    @property
    def key(self) -> str:
        return f"{self.name}_{self.room_code}"


@dataclass(frozen=True)
class PromptCard:
    """A situation card players caption."""
    id: str
    text: str
    category: str
    category_key: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'id': self.id,
            'text': self.text,
            'category': self.category,
            'category_key': self.category_key,
        }


@dataclass
class GameSettings:
    """Host-adjustable per-room settings."""
    max_rounds: int = 5
    submission_minutes: int = 3
    voting_seconds: int = 60
    min_players: int = 3
    max_players: int = 8
    min_players_enabled: bool = True
    max_players_enabled: bool = True
    enabled_categories: List[str] = field(default_factory=lambda: list(ALL_CATEGORIES))

    @property
    def submission_seconds(self) -> int:
        return self.submission_minutes * 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_rounds': self.max_rounds,
            'submission_minutes': self.submission_minutes,
            'voting_seconds': self.voting_seconds,
            'min_players': self.min_players,
            'max_players': self.max_players,
            'min_players_enabled': self.min_players_enabled,
            'max_players_enabled': self.max_players_enabled,
            'enabled_categories': list(self.enabled_categories),
        }


@dataclass
class Player:
    """A participant. `id` is the current connection id and changes on reconnect."""
    id: str
    name: str
    room_code: str
    score: int = 0
    online: bool = True
    last_seen: datetime = field(default_factory=datetime.now)
    disconnect_reason: Optional[str] = None

    @property
    def identity(self) -> PlayerIdentity:
        return PlayerIdentity(self.room_code, self.name)


@dataclass
class Submission:
    """One player's meme for the active round."""
    player_id: str
    player_name: str
    image_data: Optional[str] = None
    text_fields: Optional[Dict[str, str]] = None
    votes: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    submitted_at: datetime = field(default_factory=datetime.now)

    @property
    def is_image(self) -> bool:
        return self.image_data is not None


@dataclass
class ChatMessage:
    player_name: str
    message: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, str]:
        return {
            'id': self.id,
            'player_name': self.player_name,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class Room:
    """Canonical state of a single game room."""
    code: str
    settings: GameSettings = field(default_factory=GameSettings)
    players: List[Player] = field(default_factory=list)
    phase: GamePhase = GamePhase.WAITING
    current_round: int = 0
    situation_card: Optional[PromptCard] = None
    submissions: List[Submission] = field(default_factory=list)
    voted_players: Set[str] = field(default_factory=set)
    # voter id -> submission id
    ballots: Dict[str, str] = field(default_factory=dict)
    used_cards: List[PromptCard] = field(default_factory=list)
    available_cards: List[PromptCard] = field(default_factory=list)
    round_start_time: Optional[datetime] = None
    phase_deadline: Optional[datetime] = None
    chat_log: Deque[ChatMessage] = field(default_factory=lambda: deque(maxlen=CHAT_HISTORY_LIMIT))
    returning_to_lobby: List[str] = field(default_factory=list)
    round_results: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    @property
    def max_rounds(self) -> int:
        return self.settings.max_rounds

    @property
    def host(self) -> Optional[Player]:
        return self.players[0] if self.players else None

    @property
    def scores(self) -> Dict[str, int]:
        return {player.id: player.score for player in self.players}

    @property
    def is_empty(self) -> bool:
        return not self.players

    def is_host(self, player_id: str) -> bool:
        return self.host is not None and self.host.id == player_id

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def find_player_by_name(self, name: str) -> Optional[Player]:
        for player in self.players:
            if player.name == name:
                return player
        return None

    def find_submission(self, submission_id: str) -> Optional[Submission]:
        for submission in self.submissions:
            if submission.id == submission_id:
                return submission
        return None

    def has_submitted(self, player_id: str) -> bool:
        return any(s.player_id == player_id for s in self.submissions)

    def drop_submission(self, player_id: str) -> List[str]:
        """
        Withdraw a player's submission along with the votes it received.

        Returns:
            Ids of the voters whose ballot went to it; they may vote again
        """
        withdrawn = {s.id for s in self.submissions if s.player_id == player_id}
        if not withdrawn:
            return []
        self.submissions = [s for s in self.submissions if s.id not in withdrawn]
        released = [voter for voter, target in self.ballots.items() if target in withdrawn]
        for voter in released:
            del self.ballots[voter]
            self.voted_players.discard(voter)
        return released

    def touch(self):
        self.last_activity = datetime.now()

    def rekey_player(self, old_id: str, new_id: str):
        """Move every per-round reference from one connection id to another."""
        player = self.find_player(old_id)
        if player is not None:
            player.id = new_id
        for submission in self.submissions:
            if submission.player_id == old_id:
                submission.player_id = new_id
        if old_id in self.voted_players:
            self.voted_players.discard(old_id)
            self.voted_players.add(new_id)
        if old_id in self.ballots:
            self.ballots[new_id] = self.ballots.pop(old_id)
        self.returning_to_lobby = [new_id if pid == old_id else pid for pid in self.returning_to_lobby]

    def reset_for_new_game(self):
        """Back to the lobby with zeroed scores and a fresh card history."""
        self.phase = GamePhase.WAITING
        self.current_round = 0
        self.situation_card = None
        self.submissions = []
        self.voted_players = set()
        self.ballots = {}
        self.used_cards = []
        self.available_cards = []
        self.round_start_time = None
        self.phase_deadline = None
        self.returning_to_lobby = []
        self.round_results = []
        for player in self.players:
            player.score = 0
        self.touch()
