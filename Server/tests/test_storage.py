"""
Tests for the RoomBook storage layer

Covers the half-open interval rule, the availability check and the
dashboard statistics query against a real SQLite database.
"""

import threading
from datetime import date, datetime, time

import pytest

import storage
from models.database import BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED


BOOKING_DAY = date(2030, 6, 3)


@pytest.fixture
def session(db_manager):
    db_session = db_manager.GetSession()
    yield db_session
    db_session.close()


@pytest.fixture
def room(session):
    room = storage.CreateRoom(session, name="Huddle", floor="1", capacity=4, equipment=[])
    session.commit()
    return room


def AddBooking(session, room_id, start, end, **fields):
    booking = storage.CreateBooking(
        session,
        title=fields.pop("title", "Sync"),
        user_id=fields.pop("user_id", "admin-default"),
        room_id=room_id,
        date=fields.pop("date", BOOKING_DAY),
        start_time=start,
        end_time=end,
        attendees=[],
        **fields
    )
    session.commit()
    return booking


def test_intervals_overlap_half_open():
    """Test that touching intervals do not overlap"""
    assert storage.IntervalsOverlap(time(9), time(10), time(9, 30), time(10, 30))
    assert storage.IntervalsOverlap(time(9), time(12), time(10), time(11))  # Containment
    assert storage.IntervalsOverlap(time(10), time(11), time(9), time(12))
    assert storage.IntervalsOverlap(time(9), time(10), time(9), time(10))  # Identical

    assert not storage.IntervalsOverlap(time(9), time(10), time(10), time(11))
    assert not storage.IntervalsOverlap(time(10), time(11), time(9), time(10))
    assert not storage.IntervalsOverlap(time(8), time(9), time(13), time(14))


def test_availability_conflict_and_boundary(session, room):
    """Test overlapping requests are rejected while back-to-back ones are allowed"""
    AddBooking(session, room.id, time(9), time(10))

    assert not storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(9, 30), time(10, 30))
    assert not storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(8), time(12))
    assert storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(10), time(11))
    assert storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(8), time(9))


def test_availability_other_day_and_room(session, room):
    """Test bookings only block their own room and date"""
    other_room = storage.CreateRoom(session, name="Atrium", floor="2", capacity=20, equipment=[])
    session.commit()
    AddBooking(session, room.id, time(9), time(10))

    assert storage.CheckRoomAvailability(session, other_room.id, BOOKING_DAY, time(9), time(10))
    assert storage.CheckRoomAvailability(session, room.id, date(2030, 6, 4), time(9), time(10))


def test_availability_excludes_booking_being_edited(session, room):
    """Test a booking does not conflict with itself"""
    booking = AddBooking(session, room.id, time(9), time(10))

    assert not storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(9), time(10, 30))
    assert storage.CheckRoomAvailability(
        session, room.id, BOOKING_DAY, time(9), time(10, 30), exclude_booking_id=booking.id
    )


def test_availability_ignores_cancelled_bookings(session, room):
    """Test cancelled bookings free their slot"""
    booking = AddBooking(session, room.id, time(9), time(10))
    storage.CancelBooking(session, booking)
    session.commit()

    assert booking.status == BOOKING_STATUS_CANCELLED
    assert storage.CheckRoomAvailability(session, room.id, BOOKING_DAY, time(9), time(10))


def test_cancel_keeps_row(session, room):
    """Test cancelling is a status change and is idempotent"""
    booking = AddBooking(session, room.id, time(9), time(10))
    storage.CancelBooking(session, booking)
    storage.CancelBooking(session, booking)
    session.commit()

    stored = storage.GetBooking(session, booking.id)
    assert stored is not None
    assert stored.status == BOOKING_STATUS_CANCELLED
    assert len(storage.GetBookingsByStatus(session, BOOKING_STATUS_CANCELLED)) == 1


def test_room_soft_delete(session, room):
    """Test deactivated rooms leave listings but keep their bookings"""
    AddBooking(session, room.id, time(9), time(10))
    storage.DeactivateRoom(session, room)
    session.commit()

    assert storage.GetActiveRooms(session) == []
    assert [r.id for r in storage.GetAllRooms(session)] == [room.id]
    assert len(storage.GetRoomBookings(session, room.id)) == 1

    result = storage.GetRoomWithBookings(session, room.id, BOOKING_DAY)
    assert result["room"].is_active is False
    assert len(result["bookings"]) == 1


def test_room_with_bookings_unknown_room(session):
    assert storage.GetRoomWithBookings(session, 999) is None


def test_update_room_skips_none(session, room):
    """Test None values leave the stored field unchanged"""
    storage.UpdateRoom(session, room, name="Huddle 2", capacity=None)
    session.commit()

    assert room.name == "Huddle 2"
    assert room.capacity == 4


def test_booking_stats_snapshot(session, room):
    """Test stats at a fixed moment: one of two rooms busy, one booking today"""
    storage.CreateRoom(session, name="Atrium", floor="2", capacity=20, equipment=[])
    session.commit()
    AddBooking(session, room.id, time(10), time(11))
    AddBooking(session, room.id, time(12), time(13), date=date(2030, 6, 4))
    cancelled = AddBooking(session, room.id, time(14), time(15))
    storage.CancelBooking(session, cancelled)
    session.commit()

    stats = storage.GetBookingStats(session, now=datetime(2030, 6, 3, 10, 30), workday_hours=8)

    assert stats == {
        "total_rooms": 2,
        "available_rooms": 1,
        "total_bookings_today": 1,
        "utilization_rate": 6,  # 1 / (2 * 8) = 6.25%
    }


def test_booking_stats_end_is_exclusive(session, room):
    """Test a room is free again at the exact end of its booking"""
    AddBooking(session, room.id, time(10), time(11))

    stats = storage.GetBookingStats(session, now=datetime(2030, 6, 3, 11, 0))
    assert stats["available_rooms"] == 1


def test_booking_stats_rounds_half_up(session, room):
    """Test the utilization rate rounds .5 upward"""
    # 1 booking / (1 room * 8 hours) = 12.5%
    AddBooking(session, room.id, time(8), time(9))

    stats = storage.GetBookingStats(session, now=datetime(2030, 6, 3, 7, 0), workday_hours=8)
    assert stats["utilization_rate"] == 13
    assert stats["available_rooms"] == 1


def test_booking_stats_no_rooms(session):
    stats = storage.GetBookingStats(session, now=datetime(2030, 6, 3, 9, 0))
    assert stats == {"total_rooms": 0, "available_rooms": 0, "total_bookings_today": 0, "utilization_rate": 0}


def test_concurrent_writers_book_slot_once(db_manager, room):
    """Test competing check-then-insert transactions leave one confirmed booking"""
    writer_count = 8
    barrier = threading.Barrier(writer_count)
    outcomes = []
    errors = []

    def BookSlot(writer):
        barrier.wait()
        try:
            with db_manager.GetWriteSession() as db_session:
                if storage.CheckRoomAvailability(db_session, room.id, BOOKING_DAY, time(9), time(10)):
                    storage.CreateBooking(
                        db_session,
                        title=f"Writer {writer}",
                        user_id="admin-default",
                        room_id=room.id,
                        date=BOOKING_DAY,
                        start_time=time(9),
                        end_time=time(10),
                        attendees=[]
                    )
                    outcomes.append(True)
                else:
                    outcomes.append(False)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=BookSlot, args=(writer,)) for writer in range(writer_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert outcomes.count(True) == 1
    assert outcomes.count(False) == writer_count - 1

    check_session = db_manager.GetSession()
    try:
        confirmed = storage.GetBookingsByStatus(check_session, BOOKING_STATUS_CONFIRMED)
    finally:
        check_session.close()
    assert len(confirmed) == 1
