"""
Work Log Model

Time entries owned by a user against a project. A work log has no
organization column; its tenant is reached through the related project.
"""

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text
)
from sqlalchemy.orm import relationship

from .base import BaseModel, TimestampMixin


class WorkLog(BaseModel, TimestampMixin):
    """
    A span of work by one user on one project.

    Attributes:
        user_id: Owning user
        project_id: Project the time was logged against
        start_time / end_time: Span boundaries
        duration: Length in seconds
        is_billable / is_approved: Billing workflow flags
    """

    __tablename__ = 'work_logs'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, default=0, nullable=False)
    is_billable = Column(Boolean, default=False, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    approved_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    user = relationship('User', foreign_keys=[user_id], back_populates='work_logs')
    project = relationship('Project', back_populates='work_logs')

    __table_args__ = (
        Index('idx_work_logs_user_start', 'user_id', 'start_time'),
        Index('idx_work_logs_project', 'project_id'),
        CheckConstraint('duration >= 0', name='ck_work_log_duration_positive'),
    )
