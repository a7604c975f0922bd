"""
Room Factory

Creates rooms through the real services and drives them into a given phase.
Connection ids are `<name>-sid`.
"""

from typing import Optional

from mimclash.core.game_phases import GamePhase
from mimclash.core.models import Player, Room

TINY_PNG = 'data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=='


def sid(name: str) -> str:
    return f'{name}-sid'


class RoomFactory:
    """Builds rooms through the container's services."""

    def __init__(self, container):
        self.room_manager = container.get('RoomManager')
        self.identity_service = container.get('IdentityService')
        self.game_flow = container.get('GameFlowService')

    def create_room(self, names=('Alice', 'Bob', 'Carol'), **settings) -> Room:
        """A lobby room with the given players joined in order (the first is host)."""
        room = self.room_manager.create_room()
        for key, value in settings.items():
            setattr(room.settings, key, value)
        for name in names:
            self.add_player(room, name)
        return room

    def add_player(self, room: Room, name: str) -> Player:
        with self.room_manager.room_operation(room.code):
            player, _ = self.room_manager.add_player(room, name, sid(name))
            self.identity_service.bind(player.id, player)
        return player

    def player(self, room: Room, name: str) -> Optional[Player]:
        return room.find_player_by_name(name)

    def start_game(self, room: Room) -> Room:
        with self.room_manager.room_operation(room.code):
            self.game_flow.start_game(room, room.host)
        return room

    def submit(self, room: Room, name: str):
        with self.room_manager.room_operation(room.code):
            return self.game_flow.submit(room, self.player(room, name), {'image_data': TINY_PNG})

    def submit_all(self, room: Room):
        return [self.submit(room, p.name) for p in list(room.players)]

    def vote(self, room: Room, voter: str, author: str):
        """`voter` votes for `author`'s submission."""
        with self.room_manager.room_operation(room.code):
            author_player = self.player(room, author)
            target = next(s for s in room.submissions if s.player_id == author_player.id)
            return self.game_flow.cast_vote(room, self.player(room, voter), target.id)

    def to_voting(self, room: Room) -> Room:
        """Start the game, submit for everyone and end the playing phase."""
        self.start_game(room)
        self.submit_all(room)
        self.game_flow.advance_phase(room.code, GamePhase.PLAYING)
        return room
