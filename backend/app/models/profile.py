from datetime import datetime

from app.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    # Identity-provider UID; profiles are keyed by the authenticated user.
    user_id = db.Column(db.String(128), primary_key=True)

    email = db.Column(db.String(255), nullable=False, default="")
    display_name = db.Column(db.String(120), nullable=False, default="")
    bio = db.Column(db.Text, nullable=True)
    dob = db.Column(db.DateTime, nullable=True)

    # Soft reference: approved download URL or empty.
    photo_url = db.Column(db.String(1024), nullable=False, default="", server_default="")

    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email or "",
            "display_name": self.display_name or "",
            "bio": self.bio or "",
            "dob": self.dob.isoformat() if self.dob else None,
            "photo_url": self.photo_url or "",
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_public_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email or "",
            "display_name": self.display_name or "",
            "photo_url": self.photo_url or "",
        }
