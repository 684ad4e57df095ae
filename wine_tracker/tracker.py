import logging
from typing import List, Optional

from office_library.clock import SystemClock
from office_library.database import connection, transaction
from office_library.errors import BusinessRuleViolation, NotFound
from wine_tracker import store
from wine_tracker.models import Producer, Region, Wine
from wine_tracker.schemas import (
    ProducerCreateModel,
    ProducerUpdateModel,
    RegionCreateModel,
    RegionUpdateModel,
    WineCreateModel,
    WineUpdateModel,
)

logger = logging.getLogger(__name__)


class WineTracker:
    """CRUD over regions, producers and wines sharing the library's database file."""

    def __init__(self, db_file: Optional[str] = None, clock=None) -> None:
        self.db_file = db_file
        self.clock = clock or SystemClock()
        store.create_tables(db_file)

    # ------------------------- Regions ------------------------- #
    def create_region(self, request: RegionCreateModel) -> Region:
        logger.info("Creating new region: %s", request.name)
        region = Region(**request.model_dump())
        with transaction(self.db_file) as conn:
            store.insert_region(conn, region)
        return region

    def list_regions(self) -> List[Region]:
        with connection(self.db_file) as conn:
            return store.list_regions(conn)

    def get_region(self, region_id: str) -> Region:
        with connection(self.db_file) as conn:
            region = store.find_region(conn, region_id)
        if region is None:
            raise NotFound("Region", region_id)
        return region

    def update_region(self, region_id: str, request: RegionUpdateModel) -> Region:
        logger.info("Updating region with id: %s", region_id)
        with transaction(self.db_file) as conn:
            region = store.find_region(conn, region_id)
            if region is None:
                raise NotFound("Region", region_id)
            for field, value in request.model_dump(exclude_none=True).items():
                setattr(region, field, value)
            store.update_region(conn, region)
        return region

    def delete_region(self, region_id: str) -> None:
        logger.info("Deleting region with id: %s", region_id)
        with transaction(self.db_file) as conn:
            if store.delete_region(conn, region_id) == 0:
                raise NotFound("Region", region_id)

    # ------------------------- Producers ------------------------- #
    def create_producer(self, request: ProducerCreateModel) -> Producer:
        logger.info("Creating new producer: %s", request.name)
        with transaction(self.db_file) as conn:
            region = store.find_region(conn, request.region_id)
            if region is None:
                raise NotFound("Region", request.region_id)
            producer = Producer(region_name=region.name, **request.model_dump())
            store.insert_producer(conn, producer)
        return producer

    def list_producers(self) -> List[Producer]:
        with connection(self.db_file) as conn:
            return store.list_producers(conn)

    def get_producer(self, producer_id: str) -> Producer:
        with connection(self.db_file) as conn:
            producer = store.find_producer(conn, producer_id)
        if producer is None:
            raise NotFound("Producer", producer_id)
        return producer

    def update_producer(self, producer_id: str, request: ProducerUpdateModel) -> Producer:
        logger.info("Updating producer with id: %s", producer_id)
        changes = request.model_dump(exclude_none=True)
        with transaction(self.db_file) as conn:
            producer = store.find_producer(conn, producer_id)
            if producer is None:
                raise NotFound("Producer", producer_id)
            if "region_id" in changes:
                region = store.find_region(conn, changes["region_id"])
                if region is None:
                    raise NotFound("Region", changes["region_id"])
                producer.region_name = region.name

            # Fields left out of the request keep their stored values
            for field, value in changes.items():
                setattr(producer, field, value)
            store.update_producer(conn, producer)
        return producer

    def delete_producer(self, producer_id: str) -> None:
        logger.info("Deleting producer with id: %s", producer_id)
        with transaction(self.db_file) as conn:
            if store.delete_producer(conn, producer_id) == 0:
                raise NotFound("Producer", producer_id)

    # ------------------------- Wines ------------------------- #
    def _check_drinking_date(self, drinking_date) -> None:
        if drinking_date > self.clock.today():
            raise BusinessRuleViolation("Drinking date cannot be in the future")

    def create_wine(self, request: WineCreateModel) -> Wine:
        logger.info("Creating new wine: %s", request.name)
        self._check_drinking_date(request.drinking_date)
        with transaction(self.db_file) as conn:
            producer = store.find_producer(conn, request.producer_id)
            if producer is None:
                raise NotFound("Producer", request.producer_id)
            region = store.find_region(conn, request.region_id)
            if region is None:
                raise NotFound("Region", request.region_id)

            wine = Wine(producer_name=producer.name, region_name=region.name, **request.model_dump())
            store.insert_wine(conn, wine)
        logger.info("Successfully created wine with id: %s", wine.id)
        return wine

    def list_wines(self) -> List[Wine]:
        with connection(self.db_file) as conn:
            return store.list_wines(conn)

    def get_wine(self, wine_id: str) -> Wine:
        with connection(self.db_file) as conn:
            wine = store.find_wine(conn, wine_id)
        if wine is None:
            raise NotFound("Wine", wine_id)
        return wine

    def update_wine(self, wine_id: str, request: WineUpdateModel) -> Wine:
        """Apply only the fields the request carries."""
        logger.info("Updating wine with id: %s", wine_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "drinking_date" in changes:
            self._check_drinking_date(changes["drinking_date"])

        with transaction(self.db_file) as conn:
            wine = store.find_wine(conn, wine_id)
            if wine is None:
                raise NotFound("Wine", wine_id)
            if "producer_id" in changes:
                producer = store.find_producer(conn, changes["producer_id"])
                if producer is None:
                    raise NotFound("Producer", changes["producer_id"])
                wine.producer_name = producer.name
            if "region_id" in changes:
                region = store.find_region(conn, changes["region_id"])
                if region is None:
                    raise NotFound("Region", changes["region_id"])
                wine.region_name = region.name

            for field, value in changes.items():
                setattr(wine, field, value)
            store.update_wine(conn, wine)
        return wine

    def delete_wine(self, wine_id: str) -> None:
        logger.info("Deleting wine with id: %s", wine_id)
        with transaction(self.db_file) as conn:
            if store.delete_wine(conn, wine_id) == 0:
                raise NotFound("Wine", wine_id)
