import uuid
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base, utcnow

USER_ROLES = ("admin", "manager", "employee")
BRIEF_STATUSES = ("draft", "active", "in-progress", "review", "completed", "archived")
TASK_STATUSES = ("pending", "in-progress", "review", "done")
DELIVERABLE_STATUSES = ("pending", "approved", "rejected")
CLIENT_TASK_STATUSES = ("pending_review", "accepted", "in_progress", "completed", "declined")
NOTIFICATION_TYPES = (
    "task_assigned",
    "task_status_changed",
    "brief_assigned",
    "deliverable_submitted",
    "priority_changed",
    "brief_completed",
    "team_added",
    "comment",
    "deadline_reminder",
    "deliverable_approved",
    "deliverable_rejected",
    "jsr_task_added",
    "direct_message",
)


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    name = Column(String)
    role = Column(String, default="employee", nullable=False)
    designation = Column(String)
    avatar_url = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    teams = relationship("UserTeam", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship(
        "Notification",
        back_populates="recipient",
        foreign_keys="Notification.recipient_id",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email


class Team(Base):
    __tablename__ = "teams"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text)
    lead_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    color = Column(String, default="#6366f1")
    created_at = Column(DateTime(timezone=True), default=utcnow)

    lead = relationship("User", foreign_keys=[lead_id])
    members = relationship("UserTeam", back_populates="team", cascade="all, delete-orphan")


class UserTeam(Base):
    __tablename__ = "user_teams"
    __table_args__ = (UniqueConstraint("user_id", "team_id", name="uq_user_team"),)
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="teams")
    team = relationship("Team", back_populates="members")


class Brand(Base):
    __tablename__ = "brands"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text)
    color = Column(String, default="#6366f1")
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    managers = relationship("BrandManager", back_populates="brand", cascade="all, delete-orphan")


class BrandManager(Base):
    __tablename__ = "brand_managers"
    __table_args__ = (UniqueConstraint("brand_id", "manager_id", name="uq_brand_manager"),)
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"), nullable=False)
    manager_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    brand = relationship("Brand", back_populates="managers")
    manager = relationship("User")


class Brief(Base):
    __tablename__ = "briefs"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text)
    status = Column(String, default="draft", nullable=False)
    assigned_manager_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"))
    global_priority = Column(Integer, default=1, nullable=False)
    deadline = Column(DateTime(timezone=True))
    archived_at = Column(DateTime(timezone=True))
    archived_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    assigned_manager = relationship("User", foreign_keys=[assigned_manager_id])
    archiver = relationship("User", foreign_keys=[archived_by])
    brand = relationship("Brand")
    tasks = relationship("Task", back_populates="brief")
    team_links = relationship("BriefTeam", back_populates="brief")


class BriefTeam(Base):
    __tablename__ = "brief_teams"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brief_id = Column(UUID(as_uuid=True), ForeignKey("briefs.id"), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"), nullable=False)

    brief = relationship("Brief", back_populates="team_links")
    team = relationship("Team")


class Task(Base):
    __tablename__ = "tasks"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brief_id = Column(UUID(as_uuid=True), ForeignKey("briefs.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    assignee_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    assigned_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    status = Column(String, default="pending", nullable=False)
    sort_order = Column(Integer, default=1000, nullable=False)
    duration = Column(String)
    duration_minutes = Column(Integer, default=0)
    deadline = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    blocked_by = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    brief = relationship("Brief", back_populates="tasks")
    assignee = relationship("User", foreign_keys=[assignee_id])
    assigner = relationship("User", foreign_keys=[assigned_by])


class Deliverable(Base):
    __tablename__ = "deliverables"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id"), nullable=False)
    submitted_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String)
    status = Column(String, default="pending", nullable=False)
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    review_note = Column(Text)
    reviewed_at = Column(DateTime(timezone=True))
    submitted_at = Column(DateTime(timezone=True), default=utcnow)

    task = relationship("Task")
    submitter = relationship("User", foreign_keys=[submitted_by])
    reviewer = relationship("User", foreign_keys=[reviewed_by])


class Comment(Base):
    __tablename__ = "comments"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_type = Column(String, nullable=False)  # brief, task
    parent_id = Column(UUID(as_uuid=True), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    mentions = Column(JSON, default=list)
    is_pinned = Column(Boolean, default=False)
    pinned_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    author = relationship("User", foreign_keys=[user_id])


class CommentReaction(Base):
    __tablename__ = "comment_reactions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    comment_id = Column(UUID(as_uuid=True), ForeignKey("comments.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    emoji = Column(String, nullable=False)


class CommentReadReceipt(Base):
    __tablename__ = "comment_read_receipts"
    __table_args__ = (UniqueConstraint("user_id", "brief_id", name="uq_read_receipt"),)
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    brief_id = Column(UUID(as_uuid=True), ForeignKey("briefs.id"), nullable=False)
    last_read_at = Column(DateTime(timezone=True), default=utcnow)


class Attachment(Base):
    __tablename__ = "attachments"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_type = Column(String, nullable=False)  # brief, task
    parent_id = Column(UUID(as_uuid=True), nullable=False)
    file_name = Column(String, nullable=False)
    file_type = Column(String)
    file_size = Column(Integer, default=0)
    storage_path = Column(String, nullable=False)
    uploaded_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    uploader = relationship("User")


class TimeEntry(Base):
    __tablename__ = "time_entries"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    started_at = Column(DateTime(timezone=True), default=utcnow)
    stopped_at = Column(DateTime(timezone=True))
    duration_minutes = Column(Integer)
    is_manual = Column(Boolean, default=False)
    is_running = Column(Boolean, default=False)

    task = relationship("Task")
    user = relationship("User")


class BriefTemplate(Base):
    __tablename__ = "brief_templates"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text)
    tasks = Column(JSON, default=list)  # [{title, description, duration, duration_minutes}]
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipient_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    brief_id = Column(UUID(as_uuid=True), ForeignKey("briefs.id"))
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id"))
    triggered_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    recipient = relationship("User", back_populates="notifications", foreign_keys=[recipient_id])


class ActivityLog(Base):
    __tablename__ = "activity_log"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brief_id = Column(UUID(as_uuid=True), ForeignKey("briefs.id"), nullable=False)
    task_id = Column(UUID(as_uuid=True))
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    action = Column(String, nullable=False)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User")


class Invite(Base):
    __tablename__ = "invites"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, default="employee", nullable=False)
    designation = Column(String)
    team_id = Column(UUID(as_uuid=True), ForeignKey("teams.id"))
    token = Column(String, unique=True, nullable=False)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    used = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class JsrLink(Base):
    __tablename__ = "jsr_links"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"), nullable=False)
    token = Column(String, unique=True, nullable=False)
    label = Column(String)
    is_active = Column(Boolean, default=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    brand = relationship("Brand")


class JsrClientTask(Base):
    __tablename__ = "jsr_client_tasks"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    jsr_link_id = Column(UUID(as_uuid=True), ForeignKey("jsr_links.id"), nullable=False)
    brand_id = Column(UUID(as_uuid=True), ForeignKey("brands.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    client_name = Column(String)
    proposed_deadline = Column(DateTime(timezone=True))
    final_deadline = Column(DateTime(timezone=True))
    status = Column(String, default="pending_review", nullable=False)
    linked_task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    linked_task = relationship("Task")


class DirectMessage(Base):
    __tablename__ = "direct_messages"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    recipient_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
