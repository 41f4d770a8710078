from app.schemas.envelope import Envelope, ErrorEnvelope
from app.schemas.user import (
    SignupRequest,
    LoginRequest,
    GoogleLoginRequest,
    UserResponse,
    UserBrief,
    AuthData,
    UserData,
)
from app.schemas.post import PostCreate, PostUpdate, PostResponse, PostData, PostListData, LikeData
from app.schemas.comment import CommentCreate, CommentResponse, CommentData, CommentListData, ReactionData
