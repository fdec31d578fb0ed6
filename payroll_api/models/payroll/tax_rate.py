from datetime import datetime
from payroll_api.extensions import db


class TaxRate(db.Model):
    """
    One annual-income bracket. tax_rate is a percentage (15 => 15%).
    max_income NULL means "and above". Applied flat to the whole annual income.
    """
    __tablename__ = "tax_rates"

    id = db.Column(db.Integer, primary_key=True)
    tax_year = db.Column(db.Integer, nullable=False, index=True)
    min_income = db.Column(db.Numeric(14, 2), nullable=False)
    max_income = db.Column(db.Numeric(14, 2))
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False)
    tax_bracket_name = db.Column(db.String(80), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
