"""
API v1 routes.

Defines the registration endpoints: new, create, show, edit, update,
delete, plus account confirmation.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from src.api.dependencies import (
    get_app_settings,
    get_current_user,
    get_registration_service,
    get_session,
    redirect_logged_in,
    require_registerable,
)
from src.api.models import (
    ErrorResponse,
    FormResponse,
    RegistrationForm,
    ShowResponse,
    UserResponse,
)
from src.api.session import RequestSession
from src.config.settings import Settings
from src.domain.registration import (
    ConfirmResult,
    RegistrationService,
    RegistrationStatus,
)
from src.domain.user import User

router = APIRouter(tags=["v1"])

registrations = APIRouter(
    prefix="/registrations",
    dependencies=[Depends(require_registerable)],
)

_FAILED = (RegistrationStatus.INVALID, RegistrationStatus.CAPTCHA_FAILED)


def _render_form(response: FormResponse) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=response.model_dump(mode="json"),
    )


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@registrations.get(
    "/new",
    response_model=FormResponse,
    dependencies=[Depends(redirect_logged_in)],
    summary="New registration form",
)
async def new(
    service: RegistrationService = Depends(get_registration_service),
) -> FormResponse:
    """Render an empty registration form."""
    return FormResponse.from_changes("new", service.new())


@registrations.post(
    "",
    response_model=None,
    status_code=status.HTTP_303_SEE_OTHER,
    dependencies=[Depends(redirect_logged_in)],
    responses={
        303: {"description": "Account created"},
        422: {"model": FormResponse, "description": "Invalid registration or CAPTCHA failure"},
    },
    summary="Register a new account",
    description="Create the account, send a confirmation if enabled and log the user in "
    "when unconfirmed access is allowed.",
)
async def create(
    form: RegistrationForm,
    request: Request,
    service: RegistrationService = Depends(get_registration_service),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse | RedirectResponse:
    """
    Create the new user account.

    - **registration**: map with email, password, password_confirmation and name
    - **g-recaptcha-response**: CAPTCHA token when CAPTCHA is enabled
    """
    remote_ip = request.client.host if request.client else None
    outcome = service.create(
        form.registration,
        session,
        captcha_token=form.captcha_token,
        remote_ip=remote_ip,
    )

    if outcome.status in _FAILED:
        return _render_form(FormResponse.from_changes("new", outcome.changes, outcome.notice))

    if outcome.notice:
        session.flash(outcome.notice)
    if outcome.status == RegistrationStatus.SIGNED_IN:
        return _redirect(settings.after_registration_path)
    return _redirect(settings.unconfirmed_registration_path)


@registrations.get(
    "",
    response_model=ShowResponse,
    responses={401: {"model": ErrorResponse, "description": "Login required"}},
    summary="Show the current account",
)
async def show(
    user: User = Depends(get_current_user),
    session: RequestSession = Depends(get_session),
) -> ShowResponse:
    """Show the account page along with pending notices."""
    return ShowResponse(user=UserResponse.from_user(user), notices=session.pop_flashes())


@registrations.get(
    "/edit",
    response_model=FormResponse,
    responses={401: {"model": ErrorResponse, "description": "Login required"}},
    summary="Edit account form",
)
async def edit(
    user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
) -> FormResponse:
    """Render the edit form filled with the current account."""
    return FormResponse.from_changes("edit", service.edit(user))


@registrations.api_route(
    "",
    methods=["PUT", "PATCH"],
    response_model=None,
    status_code=status.HTTP_303_SEE_OTHER,
    responses={
        303: {"description": "Account updated"},
        401: {"model": ErrorResponse, "description": "Login required"},
        422: {"model": FormResponse, "description": "Invalid changes"},
    },
    summary="Update the current account",
)
async def update(
    form: RegistrationForm,
    user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse | RedirectResponse:
    """Update the account; changing the password requires current_password."""
    outcome = service.update(user, form.registration, session)

    if outcome.status in _FAILED:
        return _render_form(FormResponse.from_changes("edit", outcome.changes))

    session.flash(outcome.notice)
    return _redirect(settings.after_update_path)


@registrations.delete(
    "",
    response_model=None,
    status_code=status.HTTP_303_SEE_OTHER,
    responses={
        303: {"description": "Account deleted"},
        401: {"model": ErrorResponse, "description": "Login required"},
        500: {"model": ErrorResponse, "description": "Account deletion failed"},
    },
    summary="Delete the current account",
)
async def delete(
    user: User = Depends(get_current_user),
    service: RegistrationService = Depends(get_registration_service),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Log out and delete the account."""
    notice = service.delete(user, session)
    session.flash(notice)
    return _redirect(settings.after_delete_path)


@router.get(
    "/confirmations/{token}",
    response_model=None,
    status_code=status.HTTP_303_SEE_OTHER,
    responses={
        303: {"description": "Account confirmed"},
        404: {"model": ErrorResponse, "description": "Unknown confirmation token"},
        410: {"model": ErrorResponse, "description": "Confirmation token expired"},
    },
    summary="Confirm an account",
)
async def confirm(
    token: str,
    service: RegistrationService = Depends(get_registration_service),
    session: RequestSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Confirm the account that was sent ``token``."""
    result = service.confirm(token)

    if result == ConfirmResult.INVALID:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid confirmation token",
        )
    if result == ConfirmResult.EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail="Confirmation token expired",
        )

    if result == ConfirmResult.ALREADY_CONFIRMED:
        session.flash("Account already confirmed.")
    else:
        session.flash("Account confirmed successfully.")
    return _redirect(settings.after_confirmation_path)


router.include_router(registrations)
