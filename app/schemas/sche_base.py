from typing import Optional, TypeVar, Generic

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool = True
    message: str = ''
    data: Optional[T] = None

    def success_response(self, data: T):
        self.success = True
        self.message = 'Thành công'
        self.data = data
        return self
