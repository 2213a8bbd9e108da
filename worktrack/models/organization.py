"""
Membership Graph Models

Organizations own teams and projects; users join teams and projects through
membership join-records that each carry an active flag and a role string.
These records are what the scope resolvers walk to decide who can see whom.
"""

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship, validates

from .base import BaseModel, TimestampMixin, utcnow

MEMBERSHIP_ROLES = ('lead', 'member')


class Organization(BaseModel, TimestampMixin):
    """
    Tenant boundary. FULL_ACCESS visibility never crosses it.

    Attributes:
        id: Primary key
        name: Display name
        domain: Unique e-mail domain used to place new users
        is_active: Status flag
    """

    __tablename__ = 'organizations'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    domain = Column(String(200), unique=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    teams = relationship('Team', back_populates='organization', lazy='select')
    projects = relationship('Project', back_populates='organization', lazy='select')
    users = relationship('User', back_populates='organization', lazy='select')

    @validates('name')
    def validate_name(self, key, name):
        if not name or not name.strip():
            raise ValueError("Organization name cannot be empty")
        return name.strip()


class Team(BaseModel, TimestampMixin):
    """Team belonging to exactly one organization."""

    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(
        Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True
    )
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    organization = relationship('Organization', back_populates='teams')
    members = relationship(
        'TeamMember', back_populates='team', cascade='all, delete-orphan', lazy='select'
    )
    project_links = relationship(
        'ProjectTeam', back_populates='team', cascade='all, delete-orphan', lazy='select'
    )

    __table_args__ = (
        UniqueConstraint('organization_id', 'name', name='uq_team_org_name'),
    )


class Project(BaseModel, TimestampMixin):
    """Project belonging to exactly one organization."""

    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    organization_id = Column(
        Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True
    )
    owner_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    organization = relationship('Organization', back_populates='projects')
    owner = relationship('User', foreign_keys=[owner_id])
    members = relationship(
        'ProjectMember', back_populates='project', cascade='all, delete-orphan', lazy='select'
    )
    team_links = relationship(
        'ProjectTeam', back_populates='project', cascade='all, delete-orphan', lazy='select'
    )
    work_logs = relationship('WorkLog', back_populates='project', lazy='select')

    __table_args__ = (
        UniqueConstraint('organization_id', 'code', name='uq_project_org_code'),
    )


class TeamMember(BaseModel):
    """Membership of a user in a team."""

    __tablename__ = 'team_members'

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = Column(String(20), default='member', nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    team = relationship('Team', back_populates='members')
    user = relationship('User', back_populates='team_memberships')

    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_member'),
        Index('idx_team_members_user_active', 'user_id', 'is_active'),
        CheckConstraint("role IN ('lead', 'member')", name='ck_team_member_role'),
    )


class ProjectMember(BaseModel):
    """Membership of a user in a project."""

    __tablename__ = 'project_members'

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = Column(String(20), default='member', nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship('Project', back_populates='members')
    user = relationship('User', back_populates='project_memberships')

    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name='uq_project_member'),
        Index('idx_project_members_user_active', 'user_id', 'is_active'),
        CheckConstraint("role IN ('lead', 'member')", name='ck_project_member_role'),
    )


class ProjectTeam(BaseModel):
    """Teams assigned to work on a project."""

    __tablename__ = 'project_teams'

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    team_id = Column(Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False)

    project = relationship('Project', back_populates='team_links')
    team = relationship('Team', back_populates='project_links')

    __table_args__ = (
        UniqueConstraint('project_id', 'team_id', name='uq_project_team'),
    )
