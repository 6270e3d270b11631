from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request

from cineflix.core.health import is_service_healthy
from cineflix.core.models import (
    Film,
    FilmDraft,
    FilmNotFoundError,
    FilmValidationError,
    FilterCriteria,
)
from cineflix.core.schemas import (
    ActionResponse,
    AddFilmRequest,
    AddWatchlistRequest,
    FilmDraftOut,
    FilmOut,
    FilterRequest,
    HealthRecordOut,
    ModalOut,
    NavigateRequest,
    SearchResponse,
    SearchResultOut,
    SelectSearchResultRequest,
    ServicesHealthResponse,
    SortRequest,
    StateResponse,
    SuggestionsResponse,
    UpdateFilmRequest,
    UpdateWatchlistRequest,
    WatchlistEntryOut,
)
from cineflix.core.tracker import WILDCARD_FAILED_MESSAGE, FilmTracker

router = APIRouter()


def _tracker(request: Request) -> FilmTracker:
    return request.app.state.tracker


def _film_out(film: Film) -> FilmOut:
    return FilmOut(**film.to_dict())


def _draft_out(draft: FilmDraft) -> FilmDraftOut:
    return FilmDraftOut(
        title=draft.title, year=draft.year, poster=draft.poster, description=draft.description
    )


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/state", response_model=StateResponse)
def app_state(request: Request) -> StateResponse:
    tracker = _tracker(request)
    state = tracker.state
    return StateResponse(
        user_id=tracker.user_id,
        current_page=state.current_page,
        film_count=len(state.films),
        watchlist_count=len(state.watchlist),
        selected_film=_film_out(state.selected_film) if state.selected_film else None,
        selected_draft=_draft_out(state.selected_draft) if state.selected_draft else None,
        modal=ModalOut(show=state.modal.show, kind=state.modal.kind, message=state.modal.message),
        limited_features=state.limited_features,
    )


@router.get("/api/films", response_model=list[FilmOut])
def list_films(request: Request) -> list[FilmOut]:
    return [_film_out(f) for f in _tracker(request).state.films]


@router.get("/api/films/recent", response_model=list[FilmOut])
def recent_films(request: Request, limit: int = Query(default=3, ge=1, le=20)) -> list[FilmOut]:
    return [_film_out(f) for f in _tracker(request).recent_films(limit)]


@router.post("/api/films", response_model=FilmOut)
async def add_film(req: AddFilmRequest, request: Request) -> FilmOut:
    try:
        film = await _tracker(request).add_film(
            title=req.title,
            watched_date=req.watched_date,
            year=req.year,
            rating=req.rating,
            poster=req.poster,
            description=req.description,
            genre=req.genre,
        )
    except FilmValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _film_out(film)


@router.post("/api/films/sort", response_model=list[FilmOut])
async def sort_films(req: SortRequest, request: Request) -> list[FilmOut]:
    try:
        films = await _tracker(request).sort_films(req.criteria, req.order)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [_film_out(f) for f in films]


@router.post("/api/films/filter", response_model=list[FilmOut])
async def filter_films(req: FilterRequest, request: Request) -> list[FilmOut]:
    criteria = FilterCriteria(
        genre=req.genre, min_rating=req.min_rating, max_rating=req.max_rating, year=req.year
    )
    films = await _tracker(request).filter_films(criteria)
    return [_film_out(f) for f in films]


@router.get("/api/films/{film_id}", response_model=FilmOut)
def film_details(film_id: str, request: Request) -> FilmOut:
    try:
        film = _tracker(request).select_film(film_id)
    except FilmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _film_out(film)


@router.patch("/api/films/{film_id}", response_model=FilmOut)
async def update_film(film_id: str, req: UpdateFilmRequest, request: Request) -> FilmOut:
    try:
        film = await _tracker(request).update_film(
            film_id, rating=req.rating, thoughts=req.thoughts
        )
    except FilmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except FilmValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _film_out(film)


@router.delete("/api/films/{film_id}", response_model=ActionResponse)
async def remove_film(film_id: str, request: Request) -> ActionResponse:
    tracker = _tracker(request)
    try:
        await tracker.remove_film(film_id)
    except FilmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ActionResponse(ok=True, message=tracker.state.modal.message)


@router.post("/api/films/{film_id}/remove-request", response_model=ModalOut)
def request_remove(film_id: str, request: Request) -> ModalOut:
    tracker = _tracker(request)
    try:
        tracker.request_remove(film_id)
    except FilmNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    modal = tracker.state.modal
    return ModalOut(show=modal.show, kind=modal.kind, message=modal.message)


@router.get("/api/watchlist", response_model=list[WatchlistEntryOut])
async def watchlist(
    request: Request, refresh: bool = Query(default=False)
) -> list[WatchlistEntryOut]:
    tracker = _tracker(request)
    if refresh:
        await tracker.refresh_watchlist()
    return [WatchlistEntryOut(**e.to_dict()) for e in tracker.state.watchlist]


@router.post("/api/watchlist", response_model=ActionResponse)
async def add_to_watchlist(req: AddWatchlistRequest, request: Request) -> ActionResponse:
    outcome = await _tracker(request).add_to_watchlist(
        title=req.title,
        genre=req.genre,
        release_year=req.release_year,
        description=req.description,
        poster=req.poster,
        film_id=req.film_id,
    )
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.message)
    return ActionResponse(ok=True, message=outcome.message)


@router.delete("/api/watchlist/{film_id}", response_model=ActionResponse)
async def remove_from_watchlist(film_id: str, request: Request) -> ActionResponse:
    outcome = await _tracker(request).remove_from_watchlist(film_id)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.message)
    return ActionResponse(ok=True, message=outcome.message)


@router.patch("/api/watchlist/{film_id}", response_model=ActionResponse)
async def update_watchlist_status(
    film_id: str, req: UpdateWatchlistRequest, request: Request
) -> ActionResponse:
    outcome = await _tracker(request).update_watchlist_status(film_id, req.status)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.message)
    return ActionResponse(ok=True, message=outcome.message)


@router.get("/api/wildcard")
async def wildcard(request: Request, genre_id: str | None = None) -> dict[str, object]:
    suggestion = await _tracker(request).get_wildcard(genre_id)
    if suggestion is None:
        raise HTTPException(status_code=502, detail=WILDCARD_FAILED_MESSAGE)
    return {"suggestion": suggestion}


@router.get("/api/wildcard/genres", response_model=SuggestionsResponse)
async def wildcard_genres(request: Request) -> SuggestionsResponse:
    return SuggestionsResponse(items=await _tracker(request).get_genres())


@router.get("/api/search", response_model=SearchResponse)
async def search(request: Request, q: str = Query(default="")) -> SearchResponse:
    results = await _tracker(request).search_films(q)
    return SearchResponse(
        query=q.strip(),
        results=[
            SearchResultOut(
                tmdb_id=r.tmdb_id,
                title=r.title,
                release_date=r.release_date,
                poster_path=r.poster_path,
                overview=r.overview,
            )
            for r in results
        ],
    )


@router.post("/api/search/select", response_model=FilmDraftOut)
def select_search_result(req: SelectSearchResultRequest, request: Request) -> FilmDraftOut:
    tracker = _tracker(request)
    for result in tracker.state.search_results:
        if result.tmdb_id == req.tmdb_id:
            return _draft_out(tracker.select_search_result(result))
    raise HTTPException(status_code=404, detail="Search result not found")


@router.get("/api/recommendations", response_model=SuggestionsResponse)
def recommendations(request: Request) -> SuggestionsResponse:
    return SuggestionsResponse(items=_tracker(request).state.recommendations)


@router.get("/api/trending", response_model=SuggestionsResponse)
def trending(request: Request) -> SuggestionsResponse:
    return SuggestionsResponse(items=_tracker(request).state.trending)


@router.get("/api/services/health", response_model=ServicesHealthResponse)
async def services_health(request: Request) -> ServicesHealthResponse:
    records = await _tracker(request).check_services()
    return ServicesHealthResponse(
        services={
            name: HealthRecordOut(status=r.status, error=r.error, timestamp=r.timestamp)
            for name, r in records.items()
        },
        all_healthy=all(is_service_healthy(r) for r in records.values()),
    )


@router.post("/api/navigation")
def navigate(req: NavigateRequest, request: Request) -> dict[str, str]:
    tracker = _tracker(request)
    try:
        tracker.navigate(req.page)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"current_page": tracker.state.current_page}


@router.post("/api/navigation/back")
def navigate_back(request: Request) -> dict[str, str]:
    return {"current_page": _tracker(request).back()}


@router.post("/api/modal/confirm", response_model=ModalOut)
async def confirm_modal(request: Request) -> ModalOut:
    tracker = _tracker(request)
    await tracker.confirm_modal()
    modal = tracker.state.modal
    return ModalOut(show=modal.show, kind=modal.kind, message=modal.message)


@router.post("/api/modal/close", response_model=ModalOut)
def close_modal(request: Request) -> ModalOut:
    tracker = _tracker(request)
    tracker.close_modal()
    modal = tracker.state.modal
    return ModalOut(show=modal.show, kind=modal.kind, message=modal.message)
