from typing import List

from fastapi import APIRouter, Depends, Request, Response

from office_library.security import get_api_key
from wine_tracker.schemas import (
    ProducerCreateModel,
    ProducerUpdateModel,
    RegionCreateModel,
    RegionUpdateModel,
    WineCreateModel,
    WineUpdateModel,
)
from wine_tracker.tracker import WineTracker

router = APIRouter(prefix="/api/v1", tags=["wine-tracker"])


def get_tracker(request: Request) -> WineTracker:
    return request.app.state.wine_tracker


# --- Regions ---
@router.post("/regions", status_code=201, dependencies=[Depends(get_api_key)])
def create_region(payload: RegionCreateModel, tracker: WineTracker = Depends(get_tracker)):
    return tracker.create_region(payload).to_dict()


@router.get("/regions", response_model=List[dict])
def list_regions(tracker: WineTracker = Depends(get_tracker)):
    return [region.to_dict() for region in tracker.list_regions()]


@router.get("/regions/{region_id}")
def get_region(region_id: str, tracker: WineTracker = Depends(get_tracker)):
    return tracker.get_region(region_id).to_dict()


@router.put("/regions/{region_id}", dependencies=[Depends(get_api_key)])
def update_region(region_id: str, payload: RegionUpdateModel, tracker: WineTracker = Depends(get_tracker)):
    return tracker.update_region(region_id, payload).to_dict()


@router.delete("/regions/{region_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_region(region_id: str, tracker: WineTracker = Depends(get_tracker)):
    tracker.delete_region(region_id)
    return Response(status_code=204)


# --- Producers ---
@router.post("/producers", status_code=201, dependencies=[Depends(get_api_key)])
def create_producer(payload: ProducerCreateModel, tracker: WineTracker = Depends(get_tracker)):
    return tracker.create_producer(payload).to_dict()


@router.get("/producers", response_model=List[dict])
def list_producers(tracker: WineTracker = Depends(get_tracker)):
    return [producer.to_dict() for producer in tracker.list_producers()]


@router.get("/producers/{producer_id}")
def get_producer(producer_id: str, tracker: WineTracker = Depends(get_tracker)):
    return tracker.get_producer(producer_id).to_dict()


@router.put("/producers/{producer_id}", dependencies=[Depends(get_api_key)])
def update_producer(producer_id: str, payload: ProducerUpdateModel, tracker: WineTracker = Depends(get_tracker)):
    return tracker.update_producer(producer_id, payload).to_dict()


@router.delete("/producers/{producer_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_producer(producer_id: str, tracker: WineTracker = Depends(get_tracker)):
    tracker.delete_producer(producer_id)
    return Response(status_code=204)


# --- Wines ---
@router.post("/wines", status_code=201, dependencies=[Depends(get_api_key)])
def create_wine(payload: WineCreateModel, tracker: WineTracker = Depends(get_tracker)):
    return tracker.create_wine(payload).to_dict()


@router.get("/wines", response_model=List[dict])
def list_wines(tracker: WineTracker = Depends(get_tracker)):
    return [wine.to_dict() for wine in tracker.list_wines()]


@router.get("/wines/{wine_id}")
def get_wine(wine_id: str, tracker: WineTracker = Depends(get_tracker)):
    return tracker.get_wine(wine_id).to_dict()


@router.put("/wines/{wine_id}", dependencies=[Depends(get_api_key)])
def update_wine(wine_id: str, payload: WineUpdateModel, tracker: WineTracker = Depends(get_tracker)):
    """Partial update: fields left out of the body keep their stored values."""
    return tracker.update_wine(wine_id, payload).to_dict()


@router.delete("/wines/{wine_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_wine(wine_id: str, tracker: WineTracker = Depends(get_tracker)):
    tracker.delete_wine(wine_id)
    return Response(status_code=204)
