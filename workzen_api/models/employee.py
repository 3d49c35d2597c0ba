from datetime import datetime
from workzen_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    code  = db.Column(db.String(32), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    phone      = db.Column(db.String(20), nullable=True)
    address    = db.Column(db.String(255), nullable=True)

    department = db.Column(db.String(80), nullable=True)
    position   = db.Column(db.String(80), nullable=True)
    salary     = db.Column(db.Numeric(14, 2), nullable=False, default=0)  # monthly wage

    # statutory / bank
    bank_name      = db.Column(db.String(120), nullable=True)
    account_number = db.Column(db.String(40), nullable=True)
    pan_no         = db.Column(db.String(20), nullable=True)
    uan_no         = db.Column(db.String(20), nullable=True)

    hire_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", lazy="joined")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    def brief(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.full_name,
            "department": self.department,
            "position": self.position,
        }
