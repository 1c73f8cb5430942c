import uuid
from datetime import datetime

from app.extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class GarageSale(db.Model):
    __tablename__ = "sales"

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(300), nullable=False, default="")
    latitude = db.Column(db.Float, nullable=False, default=0.0)
    longitude = db.Column(db.Float, nullable=False, default=0.0)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    # Soft reference: approved download URL or empty.
    sale_cover_photo = db.Column(db.String(1024), nullable=False, default="", server_default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    items = db.relationship(
        "Item",
        backref="sale",
        lazy="select",
        order_by="Item.created_at.desc()",
        cascade="all, delete-orphan",
    )

    def to_dict(self, *, include_items: bool = True) -> dict:
        payload = {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title or "",
            "description": self.description or "",
            "address": self.address or "",
            "sale_cover_photo": self.sale_cover_photo or "",
            "latitude": float(self.latitude or 0.0),
            "longitude": float(self.longitude or 0.0),
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }
        if include_items:
            payload["items"] = [item.to_dict() for item in self.items]
        return payload


class Item(db.Model):
    __tablename__ = "items"

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Float, nullable=False, default=0.0)
    category = db.Column(db.String(64), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    images = db.relationship(
        "ItemImage",
        lazy="select",
        order_by="ItemImage.position",
        cascade="all, delete-orphan",
    )

    @property
    def image_urls(self) -> list[str]:
        return [img.url for img in self.images if img.url]

    def set_image_urls(self, urls) -> None:
        self.images = [ItemImage(position=idx, url=url) for idx, url in enumerate(urls or [])]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "name": self.name or "",
            "description": self.description or "",
            "price": float(self.price or 0.0),
            "image_urls": self.image_urls,
            "category": self.category or "",
            "created_at": _iso(self.created_at),
        }


class ItemImage(db.Model):
    """One entry of an item's ordered image list (a soft reference)."""

    __tablename__ = "item_images"

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.String(64), db.ForeignKey("items.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    url = db.Column(db.String(1024), nullable=False, default="", index=True)
