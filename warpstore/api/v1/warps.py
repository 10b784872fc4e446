from fastapi import APIRouter, Body, Depends, Path

from warpstore.api.dependencies import get_actor, get_game, get_player_name_resolver, get_warp_service
from warpstore.i18n import DynamicMessages, LocaleManager
from warpstore.platform import Actor, Game, PlayerNameResolver
from warpstore.schemas import (
    StatusMessage,
    VisitResponse,
    WarpInfoResponse,
    WarpList,
    WarpResponse,
    WelcomeMessageUpdate,
)
from warpstore.services.errors import NotUsable
from warpstore.services.info_printer import InfoPrinter
from warpstore.services.warp_service import WarpService

router = APIRouter()
msg = DynamicMessages()


def _response(warp_service: WarpService, warp, actor: Actor) -> WarpResponse:
    include_invitations = warp_service.authorization_resolver.is_modifiable(warp, actor)
    return WarpResponse.from_warp(warp, include_invitations=include_invitations)


@router.get("/", response_model=WarpList)
def list_warps(
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """
    List the warps the caller may use.
    """
    warps = warp_service.usable_by(actor)
    return WarpList(total=len(warps), items=[_response(warp_service, warp, actor) for warp in warps])


@router.get("/{name}", response_model=WarpResponse)
def get_warp(
    name: str = Path(..., title="The name of the warp to get"),
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """
    Get a specific warp by name.

    Invitation lists are only included for callers who may modify the warp.
    """
    warp = warp_service.get(name)
    if not warp_service.authorization_resolver.is_usable(warp, actor):
        raise NotUsable(name)
    return _response(warp_service, warp, actor)


@router.get("/{name}/info", response_model=WarpInfoResponse)
def get_warp_info(
    name: str,
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
    game: Game = Depends(get_game),
    player_name_resolver: PlayerNameResolver = Depends(get_player_name_resolver),
):
    """Get the localized information text of a warp."""
    warp = warp_service.get(name)
    if not warp_service.authorization_resolver.is_usable(warp, actor):
        raise NotUsable(name)
    printer = InfoPrinter(warp, warp_service.authorization_resolver, game, player_name_resolver)
    return WarpInfoResponse(name=warp.name, text=printer.get_text(actor))


@router.post("/{name}/private", response_model=StatusMessage)
def privatize_warp(
    name: str,
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """Make a warp private."""
    warp = warp_service.privatize(name, actor)
    with LocaleManager.using(actor.locale):
        message = msg.get_string("warp.private", warp=warp.name)
    return StatusMessage(message=message, warp=_response(warp_service, warp, actor))


@router.post("/{name}/public", response_model=StatusMessage)
def publicize_warp(
    name: str,
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """Make a warp public."""
    warp = warp_service.publicize(name, actor)
    with LocaleManager.using(actor.locale):
        message = msg.get_string("warp.public", warp=warp.name)
    return StatusMessage(message=message, warp=_response(warp_service, warp, actor))


@router.post("/{name}/visit", response_model=VisitResponse)
def visit_warp(
    name: str,
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """Count a visit and return the welcome text to show."""
    warp = warp_service.visit(name, actor)
    return VisitResponse(warp=_response(warp_service, warp, actor), welcome_text=warp.welcome_text())


@router.put("/{name}/welcome-message", response_model=StatusMessage)
def update_welcome_message(
    name: str,
    update: WelcomeMessageUpdate = Body(...),
    actor: Actor = Depends(get_actor),
    warp_service: WarpService = Depends(get_warp_service),
):
    """Change the welcome message of a warp."""
    warp = warp_service.set_welcome_message(name, actor, update.welcome_message)
    with LocaleManager.using(actor.locale):
        message = msg.get_string("warp.welcome-message.changed", warp=warp.name)
    return StatusMessage(message=message, warp=_response(warp_service, warp, actor))
