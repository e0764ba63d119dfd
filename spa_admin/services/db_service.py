from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from supabase import create_async_client, AsyncClient

from spa_admin.core.config import settings
from spa_admin.core.errors import BookingNotFound, InvalidBooking, PersistenceFailure
from spa_admin.core.logger import logger
from spa_admin.models.db_models import (
    ArchivedBooking,
    Booking,
    BookingStatus,
    Service,
    ServiceCategory,
    Staff,
)

BOOKING_SELECT = "*, service:service_uuid(id, name, duration, price), staff:staff_id(id, name, email)"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DBService:
    """
    Supabase-backed store for bookings, the archive and the service catalogue.
    Every rejected call surfaces as PersistenceFailure; nothing is swallowed here.
    """
    _instance = None
    _client: AsyncClient = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DBService, cls).__new__(cls)
            # Async client is created on first use
        return cls._instance

    async def get_client(self) -> AsyncClient:
        if not self._client:
            if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
                logger.error("❌ Supabase credentials missing (SUPABASE_URL / SUPABASE_KEY)")
                raise PersistenceFailure("connect", "Supabase credentials missing")
            try:
                self._client = await create_async_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
                logger.info("✅ Supabase Async client initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Supabase Async: {e}")
                raise PersistenceFailure("connect", str(e)) from e
        return self._client

    async def _execute(self, operation: str, query, record_id: Optional[str] = None):
        try:
            return await query.execute()
        except Exception as e:
            logger.error(f"❌ DB Error ({operation}{' ' + record_id if record_id else ''}): {e}")
            raise PersistenceFailure(operation, str(e), record_id=record_id) from e

    @staticmethod
    def _parse_bookings(rows: List[Dict[str, Any]], model=Booking) -> list:
        bookings = []
        for row in rows or []:
            try:
                bookings.append(model.from_row(row))
            except InvalidBooking as e:
                logger.warning(f"⚠️ Skipping malformed booking {row.get('id')}: {e}")
        return bookings

    # --- Bookings ---

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        staff_id: Optional[str] = None,
        exclude_cancelled: bool = False,
    ) -> List[Booking]:
        client = await self.get_client()
        query = client.table('bookings').select(BOOKING_SELECT)
        if status:
            query = query.eq('status', BookingStatus(status).value)
        elif exclude_cancelled:
            query = query.neq('status', BookingStatus.CANCELLED.value)
        if staff_id:
            query = query.eq('staff_id', staff_id)
        if date_from:
            query = query.gte('booking_date', date_from.isoformat())
        if date_to:
            query = query.lte('booking_date', date_to.isoformat())
        query = query.order('booking_date').order('booking_time')

        response = await self._execute("list_bookings", query)
        return self._parse_bookings(response.data)

    async def get_booking(self, booking_id: str) -> Booking:
        client = await self.get_client()
        query = client.table('bookings').select(BOOKING_SELECT).eq('id', booking_id).limit(1)
        response = await self._execute("get_booking", query, booking_id)
        if not response.data:
            raise BookingNotFound(booking_id)
        return Booking.from_row(response.data[0])

    async def update_booking(self, booking_id: str, fields: Dict[str, Any]) -> None:
        client = await self.get_client()
        payload = dict(fields, updated_at=utcnow().isoformat())
        query = client.table('bookings').update(payload).eq('id', booking_id)
        response = await self._execute("update_booking", query, booking_id)
        if response.data is not None and len(response.data) == 0:
            raise PersistenceFailure("update_booking", "no row updated", record_id=booking_id)

    async def update_status(self, booking_id: str, status: BookingStatus) -> None:
        await self.update_booking(booking_id, {'status': BookingStatus(status).value})
        logger.info(f"✅ Booking {booking_id} -> {BookingStatus(status).value}")

    async def reschedule_booking(self, booking_id: str, new_date: date, new_time: time) -> None:
        await self.update_booking(booking_id, {
            'booking_date': new_date.isoformat(),
            'booking_time': new_time.strftime("%H:%M:%S"),
        })
        logger.info(f"📅 Booking {booking_id} moved to {new_date} {new_time.strftime('%H:%M')}")

    async def delete_booking(self, booking_id: str) -> None:
        client = await self.get_client()
        query = client.table('bookings').delete().eq('id', booking_id)
        await self._execute("delete_booking", query, booking_id)
        logger.info(f"🗑️ Booking {booking_id} deleted from DB.")

    async def archive_booking(self, booking: Booking, archived_at: Optional[datetime] = None) -> ArchivedBooking:
        """
        Copies the booking into `archived_bookings`, then removes the original.
        The copy is written with ignore_duplicates so a retried archive never
        rewrites an existing historical row.
        """
        archived = ArchivedBooking.from_booking(booking, archived_at or utcnow())
        client = await self.get_client()

        insert = client.table('archived_bookings').upsert(
            archived.to_row(), on_conflict='id', ignore_duplicates=True
        )
        await self._execute("archive_insert", insert, booking.id)
        await self.delete_booking(booking.id)
        logger.info(f"📦 Booking {booking.id} archived")
        return archived

    async def list_archived(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 500,
    ) -> List[ArchivedBooking]:
        """Newest appointments first, with the service and therapist joined like live bookings."""
        client = await self.get_client()
        query = client.table('archived_bookings').select(BOOKING_SELECT)
        if date_from:
            query = query.gte('booking_date', date_from.isoformat())
        if date_to:
            query = query.lte('booking_date', date_to.isoformat())
        if status:
            query = query.eq('status', BookingStatus(status).value)
        query = query.order('booking_date', desc=True).limit(limit)

        response = await self._execute("list_archived", query)
        return self._parse_bookings(response.data, ArchivedBooking)

    async def count(self, table: str, **filters) -> int:
        client = await self.get_client()
        query = client.table(table).select('id', count='exact', head=True)
        for column, value in filters.items():
            query = query.eq(column, value)
        response = await self._execute(f"count_{table}", query)
        return response.count or 0

    # --- Catalogue ---

    async def _list(self, table: str, order: str, active_only: bool = False) -> List[Dict[str, Any]]:
        client = await self.get_client()
        query = client.table(table).select('*')
        if active_only:
            query = query.eq('is_active', True)
        response = await self._execute(f"list_{table}", query.order(order))
        return response.data or []

    async def _get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        client = await self.get_client()
        query = client.table(table).select('*').eq('id', record_id).limit(1)
        response = await self._execute(f"get_{table}", query, record_id)
        return response.data[0] if response.data else None

    async def _insert(self, table: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self.get_client()
        response = await self._execute(f"insert_{table}", client.table(table).insert(payload))
        if not response.data:
            raise PersistenceFailure(f"insert_{table}", "no row returned")
        logger.info(f"🆕 {table} record created: {response.data[0].get('id')}")
        return response.data[0]

    async def _update(self, table: str, record_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self.get_client()
        query = client.table(table).update(payload).eq('id', record_id)
        response = await self._execute(f"update_{table}", query, record_id)
        if not response.data:
            raise PersistenceFailure(f"update_{table}", "no row updated", record_id=record_id)
        return response.data[0]

    async def _delete(self, table: str, record_id: str) -> None:
        client = await self.get_client()
        await self._execute(f"delete_{table}", client.table(table).delete().eq('id', record_id), record_id)
        logger.info(f"🗑️ {table} record {record_id} deleted")

    async def list_services(self, active_only: bool = True) -> List[Service]:
        return [Service.model_validate(r) for r in await self._list('services', 'name', active_only)]

    async def get_service(self, service_id: str) -> Optional[Service]:
        row = await self._get('services', service_id)
        return Service.model_validate(row) if row else None

    async def save_service(self, service: Service) -> Service:
        payload = service.model_dump(mode="json", exclude={"id"})
        if service.id:
            return Service.model_validate(await self._update('services', service.id, payload))
        return Service.model_validate(await self._insert('services', payload))

    async def delete_service(self, service_id: str) -> None:
        await self._delete('services', service_id)

    async def list_categories(self) -> List[ServiceCategory]:
        return [ServiceCategory.model_validate(r) for r in await self._list('service_categories', 'display_order')]

    async def save_category(self, category: ServiceCategory) -> ServiceCategory:
        payload = category.model_dump(mode="json", exclude={"id"})
        if category.id:
            return ServiceCategory.model_validate(await self._update('service_categories', category.id, payload))
        return ServiceCategory.model_validate(await self._insert('service_categories', payload))

    async def delete_category(self, category_id: str) -> None:
        await self._delete('service_categories', category_id)

    async def list_staff(self, active_only: bool = True) -> List[Staff]:
        return [Staff.model_validate(r) for r in await self._list('staff', 'name', active_only)]

    async def get_staff(self, staff_id: str) -> Optional[Staff]:
        row = await self._get('staff', staff_id)
        return Staff.model_validate(row) if row else None

    async def list_staff_for_service(self, service_id: str) -> List[Staff]:
        client = await self.get_client()
        query = client.table('staff_services').select('staff:staff_id(*)').eq('service_id', service_id)
        response = await self._execute("list_staff_for_service", query, service_id)
        return [Staff.model_validate(r['staff']) for r in response.data or [] if r.get('staff')]

    async def save_staff(self, staff: Staff) -> Staff:
        payload = staff.model_dump(mode="json", exclude={"id", "created_at"})
        if staff.id:
            return Staff.model_validate(await self._update('staff', staff.id, payload))
        return Staff.model_validate(await self._insert('staff', payload))

    async def delete_staff(self, staff_id: str) -> None:
        await self._delete('staff', staff_id)

    async def get_staff_assignments(self, staff_id: str) -> Dict[str, List[str]]:
        client = await self.get_client()
        services = await self._execute(
            "list_staff_services",
            client.table('staff_services').select('service_id').eq('staff_id', staff_id),
            staff_id,
        )
        categories = await self._execute(
            "list_staff_categories",
            client.table('staff_categories').select('category_id').eq('staff_id', staff_id),
            staff_id,
        )
        return {
            "service_ids": [r['service_id'] for r in services.data or []],
            "category_ids": [r['category_id'] for r in categories.data or []],
        }

    async def _replace_links(self, table: str, column: str, staff_id: str, ids: List[str]) -> None:
        # Link tables are rewritten whole: drop the therapist's rows, insert the new set
        ids = list(dict.fromkeys(ids))
        client = await self.get_client()
        await self._execute(f"clear_{table}", client.table(table).delete().eq('staff_id', staff_id), staff_id)
        if ids:
            rows = [{'staff_id': staff_id, column: linked_id} for linked_id in ids]
            await self._execute(f"insert_{table}", client.table(table).insert(rows), staff_id)
        logger.info(f"🔗 {table} for staff {staff_id}: {len(ids)} linked")

    async def set_staff_services(self, staff_id: str, service_ids: List[str]) -> None:
        await self._replace_links('staff_services', 'service_id', staff_id, service_ids)

    async def set_staff_categories(self, staff_id: str, category_ids: List[str]) -> None:
        await self._replace_links('staff_categories', 'category_id', staff_id, category_ids)


db_service = DBService()
