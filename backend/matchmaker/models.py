from matchmaker import db
import time


class Counter(db.Model):
    __tablename__ = 'counter'
    name = db.Column(db.String(32), primary_key=True)
    # Next value to hand out
    value = db.Column(db.BigInteger, nullable=False, default=0)

    def to_dict(self):
        return {
            'name': self.name,
            'value': self.value,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    # Raw match credential currently outstanding, if any
    credential = db.Column(db.Text, nullable=True)
    rating = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            'pid': self.id,
            'rating': self.rating,
        }


class MatchRecord(db.Model):
    __tablename__ = 'match_record'
    session_id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    player0_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    player1_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    score0 = db.Column(db.Float, nullable=False)
    score1 = db.Column(db.Float, nullable=False)
    submitted_by = db.Column(db.Integer, nullable=True)  # pid whose result arrived first
    recorded_at = db.Column(db.Float, nullable=False, default=time.time)

    @property
    def players(self):
        return (self.player0_id, self.player1_id)

    @property
    def scores(self):
        return (self.score0, self.score1)

    def to_dict(self):
        return {
            'session_id': self.session_id,
            'players': list(self.players),
            'scores': list(self.scores),
            'submitted_by': self.submitted_by,
            'recorded_at': self.recorded_at,
        }
