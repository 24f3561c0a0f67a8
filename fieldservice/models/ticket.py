"""
Модель заявки в том виде, в каком её отдаёт бэкенд.
"""

from pydantic import BaseModel, ConfigDict, Field


class Customer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: str = Field(..., alias="companyName")


class Asset(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    serial_number: str | None = Field(default=None, alias="serialNumber")
    model: str | None = None


class Ticket(BaseModel):
    """
    Заявка на обслуживание.

    Статус хранится строкой: бэкенд может прислать значение,
    которого ещё нет в таблице переходов, и это решает движок, а не парсер.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str
    status: str
    priority: str | None = None
    customer: Customer | None = None
    asset: Asset | None = None

    @property
    def customer_name(self) -> str:
        return self.customer.company_name if self.customer else "не указан"
