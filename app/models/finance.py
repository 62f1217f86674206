import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from dateutil.parser import isoparse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.utils.formatting import to_decimal

UNASSIGNED_PROJECT = "unassigned"


class CostCategory(str, Enum):
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    FOOD = "food"
    UTILITIES = "utilities"
    HEALTHCARE = "healthcare"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    EDUCATION = "education"
    SAVINGS = "savings"
    SOFTWARE = "software"
    HARDWARE = "hardware"
    TRAVEL = "travel"
    PERSONNEL = "personnel"
    MARKETING = "marketing"
    CONSULTING = "consulting"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "CostCategory":
        """Map any incoming label onto the closed set; unknown labels become OTHER."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHER


class BudgetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ExpenseFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


def parse_calendar_date(value: Any) -> Optional[dt.date]:
    """Best-effort ISO date parsing; returns None instead of raising."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def _optional_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return None


def _parse_flag(value: Any, default: bool = True) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str) and value.strip():
        return value.strip().lower() not in ("false", "0", "no", "off", "n", "f")
    return default


class FinancialRecord(BaseModel):
    """Fields shared by costs, expenses and budgets."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[Union[str, int]] = None
    name: Optional[str] = None
    amount: Decimal = Decimal("0")
    currency: str = "USD"
    category: CostCategory = CostCategory.OTHER
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )

    @field_validator("id", mode="before")
    @classmethod
    def _parse_id(cls, value: Any) -> Optional[Union[str, int]]:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return _optional_text(value)

    @field_validator("name", mode="before")
    @classmethod
    def _parse_name(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _parse_currency(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
        return "USD"

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> CostCategory:
        return CostCategory.coerce(value)

    @field_validator("project_id", mode="before")
    @classmethod
    def _parse_project_id(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @classmethod
    def coerce_many(cls, items: Optional[Iterable[Any]]) -> List["FinancialRecord"]:
        """Normalize a mix of model instances and raw mappings."""
        if not items:
            return []
        return [item if isinstance(item, cls) else cls.model_validate(item) for item in items]


class CostRecord(FinancialRecord):
    description: Optional[str] = ""
    date: Optional[dt.date] = None

    @field_validator("description", mode="before")
    @classmethod
    def _parse_description(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Optional[dt.date]:
        return parse_calendar_date(value)


class ExpenseRecord(FinancialRecord):
    description: Optional[str] = ""
    date: Optional[dt.date] = Field(
        default=None, validation_alias=AliasChoices("date", "start_date", "startDate")
    )
    end_date: Optional[dt.date] = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )
    frequency: Optional[ExpenseFrequency] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("date", "end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[dt.date]:
        return parse_calendar_date(value)

    @field_validator("description", mode="before")
    @classmethod
    def _parse_description(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("is_active", mode="before")
    @classmethod
    def _parse_is_active(cls, value: Any) -> bool:
        return _parse_flag(value)

    @field_validator("frequency", mode="before")
    @classmethod
    def _parse_frequency(cls, value: Any) -> Optional[ExpenseFrequency]:
        return _optional_enum(ExpenseFrequency, value)


class BudgetRecord(FinancialRecord):
    period: Optional[BudgetPeriod] = BudgetPeriod.MONTHLY
    start_date: Optional[dt.date] = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: Optional[dt.date] = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[dt.date]:
        return parse_calendar_date(value)

    @field_validator("period", mode="before")
    @classmethod
    def _parse_period(cls, value: Any) -> Optional[BudgetPeriod]:
        return _optional_enum(BudgetPeriod, value)


def _matches_project(record: FinancialRecord, project_id: Optional[str]) -> bool:
    if project_id is None:
        return True
    if project_id == UNASSIGNED_PROJECT:
        return record.project_id is None
    return record.project_id == project_id


class FinancialDataset(BaseModel):
    """Request body: the three record collections a report is computed from."""

    costs: List[CostRecord] = Field(default_factory=list)
    expenses: List[ExpenseRecord] = Field(default_factory=list)
    budgets: List[BudgetRecord] = Field(default_factory=list)

    def for_project(self, project_id: Optional[str]) -> "FinancialDataset":
        """
        Scope the dataset to one project. None (or blank) keeps everything,
        "unassigned" keeps records that belong to no project.
        """
        if not project_id:
            return self
        return FinancialDataset(
            costs=[c for c in self.costs if _matches_project(c, project_id)],
            expenses=[e for e in self.expenses if _matches_project(e, project_id)],
            budgets=[b for b in self.budgets if _matches_project(b, project_id)],
        )

    def primary_currency(self) -> str:
        for records in (self.costs, self.expenses, self.budgets):
            if records:
                return records[0].currency
        return "USD"
