# Pydantic schemas
from teamdesk.schemas.user import (
    UserRegister,
    UserLogin,
    RefreshTokenRequest,
    UserBrief,
    UserResponse,
    UserUpdate,
    Token,
    LoginResponse,
)
from teamdesk.schemas.task import (
    SubtaskCreate,
    StepCreate,
    SubtaskResponse,
    StepResponse,
    CompletionUpdate,
    TaskCreate,
    TaskUpdate,
    TaskStatusUpdate,
    TaskResponse,
    TaskHistoryResponse,
    CommentCreate,
    CommentUpdate,
    CommentResponse,
)
from teamdesk.schemas.workflow import (
    WorkflowCreate,
    WorkflowUpdate,
    WorkflowResponse,
    StageCreate,
    StageResponse,
    TransitionCreate,
    TransitionResponse,
    TaskStageUpdate,
)
from teamdesk.schemas.message import (
    MessageCreate,
    PrivateMessageResponse,
    ConversationResponse,
    UnreadCountResponse,
    MarkReadResponse,
    ChannelCreate,
    ChannelUpdate,
    ChannelResponse,
    ChannelMemberAdd,
    ChannelMemberResponse,
    GroupMessageResponse,
    AttachmentResponse,
    PrivateMessageWithAttachments,
    GroupMessageWithAttachments,
)
from teamdesk.schemas.notification import (
    EmailNotificationCreate,
    EmailNotificationUpdate,
    EmailNotificationResponse,
    SendPendingResponse,
    NotificationSettingsUpdate,
    SmtpSettings,
    SmtpSettingsResponse,
)
