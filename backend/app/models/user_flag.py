from datetime import datetime

from app.extensions import db


class UserFlag(db.Model):
    __tablename__ = "user_flags"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_user_flags_user_id"),
        {"extend_existing": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    strikes = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    last_strike_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "strikes": int(self.strikes or 0),
            "last_strike_at": self.last_strike_at.isoformat() if self.last_strike_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
