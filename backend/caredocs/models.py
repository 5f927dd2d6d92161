"""데이터베이스 모델 - 이용인/활동지원사 명부, 월별 서류 제출, 결제 내역, 소급 확인 장부.
이용인·지원사 id는 불투명 문자열(원본 문서 호환). 제출 데이터는 명부와 독립된 컬렉션이라 FK를 두지 않음."""
from datetime import date, datetime
from typing import Optional, List
from sqlalchemy import String, Date, Text, ForeignKey, DateTime, Boolean, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from caredocs.database import Base

ACCESS_LOG_TYPES = ("login", "logout")


class Client(Base):
    """이용인. 계약 기간 0~N개, 담당 활동지원사 0~N명을 소유."""
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="이용인 id(불투명 문자열)")
    name: Mapped[str] = mapped_column(String(50), index=True, comment="이름")
    dob: Mapped[str] = mapped_column(String(20), comment="생년월일 YYYY-MM-DD(정규화 실패 시 원문)")
    family_support: Mapped[bool] = mapped_column(Boolean, default=False, comment="가족지원 여부")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract_periods: Mapped[List["ContractPeriod"]] = relationship(
        "ContractPeriod",
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="ContractPeriod.start",
    )
    support_workers: Mapped[List["SupportWorker"]] = relationship(
        "SupportWorker",
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="SupportWorker.position",
    )


class ContractPeriod(Base):
    """계약 기간. 종료일 미정은 2099-12-31로 저장."""
    __tablename__ = "contract_periods"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)
    start: Mapped[date] = mapped_column(Date, comment="계약 시작일")
    end: Mapped[date] = mapped_column(Date, comment="계약 종료일(미정=2099-12-31)")

    client: Mapped["Client"] = relationship("Client", back_populates="contract_periods")


class SupportWorker(Base):
    """활동지원사. 한 이용인에 소속."""
    __tablename__ = "support_workers"

    pk: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), index=True, comment="지원사 id(이용인 내 고유)")
    client_id: Mapped[str] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, comment="명부 내 순서")
    name: Mapped[str] = mapped_column(String(50), comment="이름")
    dob: Mapped[str] = mapped_column(String(20), comment="생년월일")
    service_start: Mapped[Optional[date]] = mapped_column(Date, comment="서비스 시작일")
    service_end: Mapped[Optional[date]] = mapped_column(Date, comment="서비스 종료일(NULL=진행 중)")

    client: Mapped["Client"] = relationship("Client", back_populates="support_workers")


class MonthlySubmission(Base):
    """이용인·연·월 단위 제출 레코드. month는 0=1월."""
    __tablename__ = "monthly_submissions"
    __table_args__ = (UniqueConstraint("client_id", "year", "month", name="uq_monthly_submission"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(String(64), index=True, comment="이용인 id(FK 아님)")
    year: Mapped[int] = mapped_column(Integer, comment="연도")
    month: Mapped[int] = mapped_column(Integer, comment="월 0~11")
    no_work: Mapped[bool] = mapped_column(Boolean, default=False, comment="근무 없음")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    worker_submissions: Mapped[List["WorkerSubmission"]] = relationship(
        "WorkerSubmission",
        back_populates="monthly_submission",
        cascade="all, delete-orphan",
    )


class WorkerSubmission(Base):
    """지원사별 세 가지 서류 제출 플래그"""
    __tablename__ = "worker_submissions"
    __table_args__ = (UniqueConstraint("monthly_submission_id", "worker_id", name="uq_worker_submission"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    monthly_submission_id: Mapped[int] = mapped_column(
        ForeignKey("monthly_submissions.id", ondelete="CASCADE"), index=True
    )
    worker_id: Mapped[str] = mapped_column(String(64), comment="지원사 id(FK 아님)")
    schedule: Mapped[bool] = mapped_column(Boolean, default=False, comment="일정표")
    weekly_report: Mapped[bool] = mapped_column(Boolean, default=False, comment="주간업무보고")
    retroactive_payment: Mapped[bool] = mapped_column(Boolean, default=False, comment="소급결제")

    monthly_submission: Mapped["MonthlySubmission"] = relationship(
        "MonthlySubmission", back_populates="worker_submissions"
    )


class PaymentItem(Base):
    """결제 내역 한 줄(엑셀 업로드로만 생성). 업로드 시 해당 연도 전체 교체."""
    __tablename__ = "payment_items"

    id: Mapped[str] = mapped_column(String(80), primary_key=True, comment="해시-행번호-업로드시각(ms)")
    year: Mapped[int] = mapped_column(Integer, index=True, comment="서비스 시작 연도")
    month: Mapped[int] = mapped_column(Integer, comment="서비스 시작 월 0~11")
    client_name: Mapped[str] = mapped_column(String(50), comment="대상자명")
    client_dob: Mapped[str] = mapped_column(String(20), default="", comment="대상자 생년월일(정규화)")
    service_start: Mapped[datetime] = mapped_column(DateTime, comment="서비스 시작 시간")
    service_end: Mapped[Optional[datetime]] = mapped_column(DateTime, comment="서비스 종료 시간")
    worker_name: Mapped[str] = mapped_column(String(50), default="", comment="제공인력명")
    worker_dob: Mapped[str] = mapped_column(String(20), default="", comment="제공인력 생년월일(정규화)")
    payment_type: Mapped[str] = mapped_column(String(50), default="", comment="결제구분(소급/예외/일반 등)")
    return_type: Mapped[str] = mapped_column(String(50), default="", comment="반납구분")
    reason: Mapped[Optional[str]] = mapped_column(Text, comment="사유")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    retroactive_check: Mapped[Optional["RetroactiveCheck"]] = relationship(
        "RetroactiveCheck",
        back_populates="payment_item",
        uselist=False,
        cascade="all, delete-orphan",
    )


class RetroactiveCheck(Base):
    """소급·예외 결제 건별 증빙 확인 여부"""
    __tablename__ = "retroactive_checks"

    payment_item_id: Mapped[str] = mapped_column(
        ForeignKey("payment_items.id", ondelete="CASCADE"), primary_key=True
    )
    checked: Mapped[bool] = mapped_column(Boolean, default=False, comment="증빙 확인")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payment_item: Mapped["PaymentItem"] = relationship("PaymentItem", back_populates="retroactive_check")


class AccessLog(Base):
    """접속 기록(로그인/로그아웃). 동시 작업 경고용 참고 정보일 뿐 잠금 아님."""
    __tablename__ = "access_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_name: Mapped[str] = mapped_column(String(50), index=True, comment="사용자명")
    type: Mapped[str] = mapped_column(String(10), comment="login/logout")
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, comment="기록 시각")


class AppSetting(Base):
    """키-값 설정(base_year, base_month, admin_password_hash)"""
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(Text, comment="값(문자열)")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
