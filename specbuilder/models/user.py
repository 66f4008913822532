"""User model: identities seen in bearer tokens, used for attribution."""

from datetime import datetime, timezone

from specbuilder.models import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True, comment="Token subject")
    email = db.Column(db.String(255), nullable=True, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email}

    def __repr__(self) -> str:
        return f"<User {self.id}>"
