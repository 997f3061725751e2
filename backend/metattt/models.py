from metattt import db
from metattt.services.game.identity import Player
from metattt.services.game.win_detector import Piece


class PlayerRecord(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    # Legacy rows were written before IPs were tracked
    ip_address = db.Column(db.String(64), nullable=True)
    score = db.Column(db.Integer, default=0, nullable=False)
    team = db.Column(db.String(1), nullable=False)
    online = db.Column(db.Boolean, default=False, nullable=False)

    @classmethod
    def from_player(cls, player: Player, online: bool = True) -> 'PlayerRecord':
        return cls(
            id=player.id,
            username=player.username,
            ip_address=player.ip_address,
            score=player.score,
            team=player.team.value,
            online=online,
        )

    def to_player(self) -> Player:
        return Player(
            id=self.id,
            ip_address=self.ip_address,
            team=Piece(self.team),
            score=self.score or 0,
            username=self.username,
        )
