from pydantic import BaseModel, Field


class AmountRequest(BaseModel):
	value: str = Field('', max_length=64, description='Raw amount as typed by the user')

	class ConfigDict:
		json_schema_extra = {'example': {'value': '100.50'}}


class MoveRateRequest(BaseModel):
	from_index: int = Field(..., ge=0)
	to_index: int = Field(..., ge=0)

	class ConfigDict:
		json_schema_extra = {'example': {'from_index': 3, 'to_index': 0}}
