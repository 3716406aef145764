from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConversionRequest(BaseModel):
	from_currency: str = Field(..., min_length=2, max_length=10)
	to_currency: str = Field(..., min_length=2, max_length=10)
	amount: Decimal = Field(..., gt=0)
	date: datetime | None = Field(None, description='Evaluation date, defaults to now')

	model_config = ConfigDict(
		json_schema_extra={
			'example': {'from_currency': 'BTC', 'to_currency': 'USD', 'amount': 0.5}
		}
	)

	@field_validator('from_currency', 'to_currency')
	@classmethod
	def uppercase_currency(cls, v: str):
		return v.strip().upper()
