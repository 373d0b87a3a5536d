from datetime import datetime
from typing import Optional, Any, Dict, Literal, List
from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from uuid import UUID

Role = Literal["admin", "manager", "employee"]
BriefStatus = Literal["draft", "active", "in-progress", "review", "completed", "archived"]
TaskStatus = Literal["pending", "in-progress", "review", "done"]
ClientTaskStatus = Literal["pending_review", "accepted", "in_progress", "completed", "declined"]
ParentType = Literal["brief", "task"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    role: Role
    designation: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    designation: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class InviteCreate(BaseModel):
    email: EmailStr
    name: str
    role: Role = "employee"
    designation: Optional[str] = None
    team_id: Optional[UUID] = None


class InviteOut(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    designation: Optional[str] = None
    team_id: Optional[UUID] = None
    token: str
    used: bool = False
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TeamCreate(BaseModel):
    name: str
    lead_id: UUID
    color: str = "#6366f1"
    description: Optional[str] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    lead_id: Optional[UUID] = None
    color: Optional[str] = None


class TeamOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    lead_id: Optional[UUID] = None
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TeamMemberAdd(BaseModel):
    user_id: UUID


class BrandCreate(BaseModel):
    name: str
    color: str = "#6366f1"
    description: Optional[str] = None


class BrandUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None


class BrandOut(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class BrandManagerAssign(BaseModel):
    manager_id: UUID


class BriefCreate(BaseModel):
    title: str
    description: Optional[str] = None
    assigned_manager_id: Optional[UUID] = None
    deadline: Optional[datetime] = None
    brand_id: Optional[UUID] = None


class BriefUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[BriefStatus] = None
    assigned_manager_id: Optional[UUID] = None
    deadline: Optional[datetime] = None
    brand_id: Optional[UUID] = None


class BriefOut(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    status: BriefStatus
    assigned_manager_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    brand_id: Optional[UUID] = None
    global_priority: int
    deadline: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    archived_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class BriefSummary(BriefOut):
    manager_name: Optional[str] = None
    team_names: List[str] = Field(default_factory=list)
    task_count: int = 0
    done_count: int = 0
    progress: int = 0


class ManagerAssign(BaseModel):
    manager_id: UUID


class TeamsAssign(BaseModel):
    team_ids: List[UUID]


class TaskCreate(BaseModel):
    brief_id: UUID
    title: str
    assignee_id: UUID
    duration: str
    duration_minutes: int = Field(ge=0)
    description: Optional[str] = None
    deadline: Optional[datetime] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assignee_id: Optional[UUID] = None
    duration: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None
    clear_deadline: bool = False


class TaskOut(BaseModel):
    id: UUID
    brief_id: UUID
    title: str
    description: Optional[str] = None
    assignee_id: UUID
    assigned_by: Optional[UUID] = None
    status: TaskStatus
    sort_order: int
    duration: Optional[str] = None
    duration_minutes: Optional[int] = None
    deadline: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    blocked_by: List[UUID] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

    @field_validator("blocked_by", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskReorder(BaseModel):
    user_id: UUID
    task_ids: List[UUID]


class TaskReassign(BaseModel):
    assignee_id: UUID


class BulkStatusUpdate(BaseModel):
    task_ids: List[UUID]
    status: TaskStatus


class BlockersUpdate(BaseModel):
    blocked_by: List[UUID] = Field(default_factory=list)


class DeliverableCreate(BaseModel):
    task_id: UUID
    message: str
    link: Optional[str] = None


class DeliverableReview(BaseModel):
    note: Optional[str] = None


class DeliverableReject(BaseModel):
    note: str = Field(min_length=1)


class DeliverableOut(BaseModel):
    id: UUID
    task_id: UUID
    submitted_by: UUID
    message: str
    link: Optional[str] = None
    status: Literal["pending", "approved", "rejected"]
    reviewed_by: Optional[UUID] = None
    review_note: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    parent_type: ParentType
    parent_id: UUID
    content: str = Field(min_length=1)


class CommentOut(BaseModel):
    id: UUID
    parent_type: ParentType
    parent_id: UUID
    user_id: UUID
    content: str
    mentions: List[UUID] = Field(default_factory=list)
    is_pinned: bool = False
    pinned_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_role: Optional[str] = None
    task_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ReactionToggle(BaseModel):
    emoji: str = Field(min_length=1)


class AttachmentOut(BaseModel):
    id: UUID
    parent_type: ParentType
    parent_id: UUID
    file_name: str
    file_type: Optional[str] = None
    file_size: int = 0
    uploaded_by: UUID
    uploader_name: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TimerStart(BaseModel):
    task_id: UUID


class ManualTimeEntry(BaseModel):
    task_id: UUID
    duration_minutes: int = Field(gt=0)


class TimeEntryOut(BaseModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    started_at: datetime
    stopped_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    is_manual: bool = False
    is_running: bool = False
    user_name: Optional[str] = None
    task_title: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: UUID
    recipient_id: UUID
    type: str
    title: str
    message: str
    brief_id: Optional[UUID] = None
    task_id: Optional[UUID] = None
    triggered_by: Optional[UUID] = None
    is_read: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    notifications: List[NotificationOut]
    unread_count: int


class ActivityOut(BaseModel):
    id: UUID
    brief_id: UUID
    task_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    user_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class JsrLinkCreate(BaseModel):
    brand_id: UUID
    label: Optional[str] = None


class JsrLinkOut(BaseModel):
    id: UUID
    brand_id: UUID
    token: str
    label: Optional[str] = None
    is_active: bool
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class JsrDeactivate(BaseModel):
    delete_tasks: bool = False


class ClientTaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    proposed_deadline: Optional[datetime] = None
    client_name: Optional[str] = None


class PublicClientTask(BaseModel):
    """Client request as shown on the share page, without internal staff fields."""

    id: UUID
    title: str
    description: Optional[str] = None
    client_name: Optional[str] = None
    proposed_deadline: Optional[datetime] = None
    final_deadline: Optional[datetime] = None
    status: ClientTaskStatus
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ClientTaskOut(BaseModel):
    id: UUID
    jsr_link_id: UUID
    brand_id: UUID
    title: str
    description: Optional[str] = None
    client_name: Optional[str] = None
    proposed_deadline: Optional[datetime] = None
    final_deadline: Optional[datetime] = None
    status: ClientTaskStatus
    linked_task_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    assignee_id: Optional[UUID] = None
    assignee_name: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ClientTaskStatusUpdate(BaseModel):
    status: ClientTaskStatus


class ClientTaskDeadline(BaseModel):
    final_deadline: datetime


class ClientTaskReassign(BaseModel):
    assignee_id: UUID


class CumulativeDeadline(BaseModel):
    deadline: datetime


class JsrSummary(BaseModel):
    total: int
    pending: int
    in_progress: int
    review: int
    done: int
    internal_deadline: Optional[datetime] = None


class JsrTaskItem(BaseModel):
    id: UUID
    title: str
    status: str
    brief_title: Optional[str] = None


class JsrBriefGroup(BaseModel):
    brief_title: str
    brief_status: str
    tasks: List[JsrTaskItem]


class JsrActivityItem(BaseModel):
    label: str
    brief_title: str
    timestamp: datetime


class JsrBrand(BaseModel):
    name: str
    color: Optional[str] = None
    description: Optional[str] = None


class JsrView(BaseModel):
    brand: JsrBrand
    internal_summary: JsrSummary
    tasks_by_brief: List[JsrBriefGroup]
    task_list: List[JsrTaskItem]
    recent_activity: List[JsrActivityItem]
    last_updated: Optional[datetime] = None
    client_tasks: List[PublicClientTask]
    client_tasks_deadline: Optional[datetime] = None
    overall_deadline: Optional[datetime] = None


class MessageCreate(BaseModel):
    recipient_id: UUID
    content: str


class MessageOut(BaseModel):
    id: UUID
    sender_id: UUID
    recipient_id: UUID
    content: str
    is_read: bool
    created_at: datetime
    is_mine: bool = False
    model_config = ConfigDict(from_attributes=True)


class ContactOut(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: str
    role: Role
    designation: Optional[str] = None
    unread_count: int = 0
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None


class TemplateCreate(BaseModel):
    brief_id: UUID
    name: str


class TemplateInstantiate(BaseModel):
    title: str
    brand_id: Optional[UUID] = None
    deadline: Optional[datetime] = None
    assignee_id: Optional[UUID] = None


class TemplateTask(BaseModel):
    title: str
    description: Optional[str] = None
    duration: Optional[str] = None
    duration_minutes: Optional[int] = None


class TemplateOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    tasks: List[TemplateTask] = Field(default_factory=list)
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SearchResults(BaseModel):
    briefs: List[Dict[str, Any]] = Field(default_factory=list)
    tasks: List[Dict[str, Any]] = Field(default_factory=list)
    brands: List[Dict[str, Any]] = Field(default_factory=list)
    teams: List[Dict[str, Any]] = Field(default_factory=list)
    users: List[Dict[str, Any]] = Field(default_factory=list)


class TeamTag(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UserWithTeams(UserOut):
    teams: List[TeamTag] = Field(default_factory=list)


class TaskWithBrief(TaskOut):
    brief_title: Optional[str] = None
    brief_status: Optional[str] = None
    assignee_name: Optional[str] = None
