import enum
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from app.extensions import db


def _money(value):
    return float(value) if value is not None else 0.0


def _iso(value):
    return value.isoformat() if value is not None else None


# ============================================================
# ENUMS
# ============================================================
class UserRole(enum.Enum):
    ADMIN = 'ADMIN'
    USER = 'USER'


class CommitteeStatus(enum.Enum):
    """INACTIVE -> ACTIVE -> COMPLETED, never backwards."""
    INACTIVE = 'INACTIVE'
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'


class CommitteeType(enum.Enum):
    NORMAL = 'NORMAL'
    LOTTERY = 'LOTTERY'


# ============================================================
# USER MODEL
# ============================================================
class User(UserMixin, db.Model):
    """
    A registered user. Admins create and run committees,
    plain users are enrolled into them by phone number.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    phone_no = db.Column(db.String(20), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), default=UserRole.USER.value, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    # Relationships
    committees_created = db.relationship('Committee', backref='creator', lazy='dynamic',
                                         foreign_keys='Committee.created_by')
    memberships = db.relationship('CommitteeMember', backref='user', lazy='dynamic')

    def set_password(self, password):
        """Hash and set the user's password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password against stored hash."""
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone_no': self.phone_no,
            'email': self.email or '',
            'role': self.role,
        }

    def __repr__(self):
        return f'<User {self.name}>'


# ============================================================
# COMMITTEE MODEL
# ============================================================
class Committee(db.Model):
    """
    A rotating savings pool (chit fund).

    Lifecycle:
    1. Created INACTIVE by an admin (the owner)
    2. Members are enrolled one at a time
    3. When the member count reaches max_members the draw
       schedule is generated and the committee becomes ACTIVE
    4. Once every draw is claimed the committee is COMPLETED
    """
    __tablename__ = 'committees'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    max_members = db.Column(db.Integer, nullable=False)
    no_of_months = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default=CommitteeStatus.INACTIVE.value, nullable=False)
    committee_type = db.Column(db.String(20), default=CommitteeType.NORMAL.value, nullable=False)

    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)

    # Fine configuration
    fine_start_date = db.Column(db.DateTime, nullable=True)
    fine_amount = db.Column(db.Numeric(12, 2), default=0, nullable=False)  # per day
    extra_days_for_fine = db.Column(db.Integer, default=0, nullable=False)

    # LOTTERY only
    lottery_amount = db.Column(db.Numeric(12, 2), default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    members = db.relationship('CommitteeMember', backref='committee', lazy='dynamic',
                              cascade='all, delete-orphan')
    draws = db.relationship('CommitteeDraw', backref='committee', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='CommitteeDraw.draw_date')

    def get_member_count(self):
        """Return total number of members in the committee."""
        return self.members.count()

    def is_owned_by(self, user_id):
        return self.created_by == user_id

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': _money(self.amount),
            'max_members': self.max_members,
            'no_of_months': self.no_of_months,
            'status': self.status,
            'committee_type': self.committee_type,
            'created_by': self.created_by,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'fine_start_date': _iso(self.fine_start_date),
            'fine_amount': _money(self.fine_amount),
            'extra_days_for_fine': self.extra_days_for_fine,
            'lottery_amount': _money(self.lottery_amount),
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Committee {self.name} status={self.status}>'


# ============================================================
# COMMITTEE MEMBER MODEL
# ============================================================
class CommitteeMember(db.Model):
    """Membership of a user in a committee."""
    __tablename__ = 'committee_members'

    id = db.Column(db.Integer, primary_key=True)
    committee_id = db.Column(db.Integer, db.ForeignKey('committees.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    joined_at = db.Column(db.DateTime, default=datetime.now)

    # Prevent duplicate memberships
    __table_args__ = (
        db.UniqueConstraint('committee_id', 'user_id', name='unique_committee_member'),
    )

    def __repr__(self):
        return f'<CommitteeMember user={self.user_id} committee={self.committee_id}>'


# ============================================================
# COMMITTEE DRAW MODEL
# ============================================================
class CommitteeDraw(db.Model):
    """
    One scheduled payout of a committee.

    'amount' is the agreed payout. It starts at 0 (unset) and
    can be set exactly once, never below 'min_amount'.
    """
    __tablename__ = 'committee_draws'

    id = db.Column(db.Integer, primary_key=True)
    committee_id = db.Column(db.Integer, db.ForeignKey('committees.id'), nullable=False)
    draw_date = db.Column(db.DateTime, nullable=False)
    min_amount = db.Column(db.Numeric(12, 2), nullable=False)
    amount = db.Column(db.Numeric(12, 2), default=0, nullable=False)
    paid_amount = db.Column(db.Numeric(12, 2), default=0, nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)

    settlements = db.relationship('UserWiseDraw', backref='draw', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def is_amount_set(self):
        return self.amount is not None and self.amount != 0

    def has_started(self, now):
        return self.draw_date <= now

    def to_dict(self):
        return {
            'id': self.id,
            'committee_id': self.committee_id,
            'draw_date': _iso(self.draw_date),
            'min_amount': _money(self.min_amount),
            'amount': _money(self.amount),
            'paid_amount': _money(self.paid_amount),
            'is_completed': self.is_completed,
        }

    def __repr__(self):
        return f'<CommitteeDraw committee={self.committee_id} date={self.draw_date}>'


# ============================================================
# USER WISE DRAW MODEL (SETTLEMENT ROW)
# ============================================================
class UserWiseDraw(db.Model):
    """
    A member's recorded standing (principal + fine) for one draw.

    CRITICAL: is_completed marks the member who took the payout.
    - at most one completed row per draw
    - at most one completed row per member per committee
    Both are backed by partial unique indexes, not only by
    application checks.
    """
    __tablename__ = 'user_wise_draws'

    id = db.Column(db.Integer, primary_key=True)
    committee_id = db.Column(db.Integer, db.ForeignKey('committees.id'), nullable=False)
    draw_id = db.Column(db.Integer, db.ForeignKey('committee_draws.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), default=0, nullable=False)
    fine_paid = db.Column(db.Numeric(12, 2), default=0, nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now)

    user = db.relationship('User')

    __table_args__ = (
        db.UniqueConstraint('committee_id', 'draw_id', 'user_id', name='unique_user_wise_draw'),
        db.Index('unique_claimed_draw', 'draw_id', unique=True,
                 sqlite_where=db.text('is_completed'),
                 postgresql_where=db.text('is_completed')),
        db.Index('unique_claimed_member', 'committee_id', 'user_id', unique=True,
                 sqlite_where=db.text('is_completed'),
                 postgresql_where=db.text('is_completed')),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'committee_id': self.committee_id,
            'draw_id': self.draw_id,
            'user_id': self.user_id,
            'user': dict(
                self.user.to_dict(),
                is_draw_completed=self.is_completed,
                amount_paid=_money(self.amount_paid),
                fine_paid=_money(self.fine_paid),
            ),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<UserWiseDraw draw={self.draw_id} user={self.user_id} completed={self.is_completed}>'
