"""API 요청/응답 구조 - Pydantic(명부, 제출 데이터, 결제 내역, 접속 기록)"""
from datetime import date, datetime
from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from caredocs.services.dob import normalize_dob

DocType = Literal["schedule", "weeklyReport", "retroactivePayment"]


# ---------- 명부 ----------
class ContractPeriodSchema(BaseModel):
    start: date
    end: Optional[date] = Field(None, description="비우면 종료일 미정(2099-12-31로 저장)")

    model_config = ConfigDict(from_attributes=True)


class SupportWorkerBase(BaseModel):
    name: str = Field(..., min_length=1, description="이름")
    dob: str = Field("", description="생년월일(저장 시 YYYY-MM-DD로 정규화)")
    service_start: Optional[date] = None
    service_end: Optional[date] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("dob", mode="before")
    @classmethod
    def normalize(cls, v) -> str:
        return normalize_dob(v)


class SupportWorkerCreate(SupportWorkerBase):
    id: Optional[str] = Field(None, description="비우면 자동 생성")


class SupportWorkerRead(SupportWorkerBase):
    id: str

    model_config = ConfigDict(from_attributes=True)


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, description="이름")
    dob: str = Field(..., description="생년월일")
    family_support: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("dob", mode="before")
    @classmethod
    def normalize(cls, v) -> str:
        return normalize_dob(v)


class ClientCreate(ClientBase):
    id: Optional[str] = Field(None, description="비우면 자동 생성")
    contract_periods: List[ContractPeriodSchema] = Field(default_factory=list)
    support_workers: List[SupportWorkerCreate] = Field(default_factory=list)


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    dob: Optional[str] = None
    family_support: Optional[bool] = None
    contract_periods: Optional[List[ContractPeriodSchema]] = None

    @field_validator("dob", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_dob(v) if v is not None else v


class ClientRead(ClientBase):
    id: str
    contract_periods: List[ContractPeriodSchema] = Field(default_factory=list)
    support_workers: List[SupportWorkerRead] = Field(default_factory=list)
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def fill_current_contract(self):
        """표시용 현재 계약 = 시작일이 가장 늦은 기간"""
        if self.contract_periods:
            latest = max(self.contract_periods, key=lambda p: p.start)
            self.contract_start = latest.start
            self.contract_end = latest.end
        return self


class WorkersReplace(BaseModel):
    support_workers: List[SupportWorkerCreate]


# ---------- 제출 데이터 ----------
class WorkerFlags(BaseModel):
    schedule: bool = False
    weekly_report: bool = False
    retroactive_payment: bool = False


class MonthRecord(BaseModel):
    no_work: bool = False
    worker_submissions: Dict[str, WorkerFlags] = Field(default_factory=dict)


class SubmissionUpdate(BaseModel):
    """no_work 설정 또는 (worker_id, doc_type, value) 한 칸 설정 중 하나"""
    no_work: Optional[bool] = None
    worker_id: Optional[str] = None
    doc_type: Optional[DocType] = None
    value: Optional[bool] = None

    @model_validator(mode="after")
    def check_one_form(self):
        cell_given = any(v is not None for v in (self.worker_id, self.doc_type, self.value))
        if self.no_work is not None and cell_given:
            raise ValueError("no_work와 지원사 서류 값은 동시에 보낼 수 없습니다")
        if self.no_work is None:
            if self.worker_id is None or self.doc_type is None or self.value is None:
                raise ValueError("worker_id, doc_type, value를 모두 보내야 합니다")
        return self


class StatusCell(BaseModel):
    label: str = Field(..., description="submitted/missing/not-applicable/no-workers/no-contract/no-work")
    text: str = Field(..., description="화면 표시 문구(유/무/해당없음/지원사 X/미계약/근무없음)")
    editable: bool = False


class MonthStatus(BaseModel):
    month: int
    no_work_editable: bool = False
    cells: Dict[str, StatusCell]


class ClientStatusRow(BaseModel):
    client_id: str
    client_name: str
    client_dob: str
    months: List[MonthStatus]


class StatusGridResponse(BaseModel):
    base_year: int
    base_month: int
    rows: List[ClientStatusRow]


# ---------- 결제 내역 ----------
class PaymentItemCreate(BaseModel):
    id: str
    year: int
    month: int = Field(..., ge=0, le=11)
    client_name: str
    client_dob: str = ""
    service_start: datetime
    service_end: Optional[datetime] = None
    worker_name: str = ""
    worker_dob: str = ""
    payment_type: str = ""
    return_type: str = ""
    reason: Optional[str] = None


class PaymentItemRead(PaymentItemCreate):
    checked: bool = False

    model_config = ConfigDict(from_attributes=True)


class RetroactiveCheckUpdate(BaseModel):
    checked: bool


class PaymentImportResult(BaseModel):
    year: int
    imported: int
    skipped: int
    abnormal_count: int
    retroactive_count: int


class RetroactiveCheckResult(BaseModel):
    item: PaymentItemRead
    updated_workers: Dict[str, bool] = Field(default_factory=dict, description="재계산으로 바뀐 지원사 소급결제 플래그")


# ---------- 월 상세 ----------
class WorkerMonthDetail(BaseModel):
    worker_id: str
    name: str
    dob: str
    flags: WorkerFlags
    editable: Dict[str, bool]
    payments: List[PaymentItemRead] = Field(default_factory=list)
    retroactive_items: List[PaymentItemRead] = Field(default_factory=list)


class MonthDetailResponse(BaseModel):
    client_id: str
    client_name: str
    year: int
    month: int
    no_work: bool
    no_work_editable: bool
    statuses: Dict[str, StatusCell]
    workers: List[WorkerMonthDetail]


class SaveSubmissionResponse(BaseModel):
    record: MonthRecord
    warnings: List[str] = Field(default_factory=list)


# ---------- 설정 / 접속 기록 ----------
class BasePeriod(BaseModel):
    base_year: int = Field(..., ge=2000, le=2099)
    base_month: int = Field(..., ge=0, le=11, description="0=1월")


class AccessLogCreate(BaseModel):
    user_name: str = Field(..., min_length=1)

    @field_validator("user_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class AccessLogRead(BaseModel):
    user_name: str
    type: Literal["login", "logout"]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class ActiveUsersResponse(BaseModel):
    active_users: List[str]
    warning: Optional[str] = None
