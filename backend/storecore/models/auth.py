from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Staff account used for attribution (cashier on sales, manager on
    cancellations and supply entries).

    Credentials live with the external auth service; only identity, role
    and suspension state are needed here.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    # manager | cashier
    role = db.Column(db.String(16), nullable=False, default="cashier", index=True)

    is_suspended = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_suspended": self.is_suspended,
            "created_at": to_utc_z(self.created_at),
        }
