from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class AIPromptUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_type: str = Field(..., min_length=1, alias="promptType")
    content: str = Field(..., min_length=1)
    voice_settings: Optional[Dict[str, Any]] = Field(None, alias="voiceSettings")
    metadata: Optional[Dict[str, Any]] = None
    functions: Optional[List[Dict[str, Any]]] = None
    merge_with_universal_functions: Optional[bool] = Field(None, alias="mergeWithUniversalFunctions")
    merge_with_universal_protocols: Optional[bool] = Field(None, alias="mergeWithUniversalProtocols")
