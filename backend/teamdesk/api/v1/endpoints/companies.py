"""
Company endpoints

Companies are posted as multipart forms so a logo file can ride along.
The logo is stored with the other uploads and served from
/uploads/file/{logo}. At most one company is the default; proformas
without an explicit company use it.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status, Response
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Company
from teamdesk.schemas.estimation import CompanyForm, CompanyResponse
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services import estimation_service
from teamdesk.services.file_storage import file_storage


router = APIRouter()


def company_form(
    name: str = Form(...),
    address: str = Form(...),
    phone: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    is_default: bool = Form(False),
) -> CompanyForm:
    try:
        return CompanyForm(
            name=name,
            address=address,
            phone=phone or None,
            email=email or None,
            is_default=is_default,
        )
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())


async def store_logo(company: Company, logo: Optional[UploadFile]) -> None:
    if logo is None or not logo.filename:
        return
    stored = await file_storage.save(logo)
    previous = company.logo
    company.logo = stored.file_name
    if previous:
        await file_storage.delete(previous)


@router.get("", response_model=List[CompanyResponse])
async def list_companies(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(Company).order_by(Company.is_default.desc(), Company.name))
    return result.scalars().all()


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    form: CompanyForm = Depends(company_form),
    logo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    company = Company(**form.model_dump(exclude={"is_default"}), is_default=False)
    await store_logo(company, logo)
    db.add(company)
    if form.is_default:
        await estimation_service.make_default(db, company)
    await db.commit()

    logger.info(f"[Companies] {company.name} created by {current_user.username} (default={company.is_default})")
    return company


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await estimation_service.get_company(db, company_id)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: str,
    form: CompanyForm = Depends(company_form),
    logo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Full replacement of the fields; the logo is kept unless a new file is sent"""
    company = await estimation_service.get_company(db, company_id)
    for field, value in form.model_dump(exclude={"is_default"}).items():
        setattr(company, field, value)
    await store_logo(company, logo)

    if form.is_default:
        await estimation_service.make_default(db, company)
    else:
        company.is_default = False
    await db.commit()
    await db.refresh(company)
    return company


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    company = await estimation_service.get_company(db, company_id)
    await estimation_service.detach_company(db, company)
    await db.commit()
    if company.logo:
        await file_storage.delete(company.logo)

    logger.info(f"[Companies] {company.name} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
