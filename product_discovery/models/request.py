"""
요청 모델 정의
상품 탐색 요청 관련 Pydantic 모델
"""
from typing import List, Literal

from pydantic import BaseModel, Field


class ConversationTurn(BaseModel):
    """대화 한 턴"""

    role: Literal["user", "assistant", "system"] = Field(..., description="역할")
    content: str = Field(default="", description="내용")


class DiscoveryRequest(BaseModel):
    """상품 탐색 요청"""

    message: str = Field(..., min_length=1, max_length=2000, description="사용자 메시지")
    recommendation_text: str = Field(
        ..., min_length=1, max_length=8000, description="어시스턴트가 생성한 추천 문장"
    )
    conversation: List[ConversationTurn] = Field(
        default_factory=list, description="최근 대화 발췌"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "pull up links for those sneakers",
                "recommendation_text": "**Nike Air Force 1** - $100\n- Why I love these: Classic",
                "conversation": [
                    {"role": "user", "content": "what sneakers go with chinos?"},
                    {"role": "assistant", "content": "**Nike Air Force 1** - $100"},
                ],
            }
        }
    }
