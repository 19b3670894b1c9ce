"""
Delivery windows: bookable time slots, weekly templates that generate them,
and capacity booking at checkout.

Customers can book windows from today through BOOKING_DAYS_AHEAD days out.
A window closes BOOKING_CUTOFF before it starts, or when it is full.
"""
import logging
from datetime import datetime, timedelta

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from backend.core.exceptions import NotFoundError, ValidationFailed, ConflictError
from backend.core.utils import parse_int
from .models import DeliveryWindow, WeeklyDeliveryTemplate

logger = logging.getLogger('backend.orders')

BOOKING_DAYS_AHEAD = 4
BOOKING_CUTOFF = timedelta(hours=1)
CLOSED_REASON = 'This delivery window has closed (1 hour before start time)'
FULL_REASON = 'This delivery window is full'


def day_of_week(day):
    """0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7


def starts_at(window):
    return timezone.make_aware(datetime.combine(window.date, window.start_time))


def is_closed(window, now=None):
    now = now or timezone.now()
    return starts_at(window) <= now + BOOKING_CUTOFF


def _check_times(start_time, end_time):
    if start_time is not None and end_time is not None and end_time <= start_time:
        raise ValidationFailed('End time must be after start time')


# Windows

def available_windows(date=None, now=None):
    """Enabled windows in the booking range, each with its closed state"""
    now = now or timezone.now()
    today = timezone.localdate(now)
    windows = DeliveryWindow.objects.filter(
        enabled=True, date__gte=today, date__lte=today + timedelta(days=BOOKING_DAYS_AHEAD),
    )
    if date is not None:
        windows = windows.filter(date=date)

    result = []
    for window in windows.order_by('date', 'start_time'):
        window.is_closed = is_closed(window, now)
        window.closed_reason = CLOSED_REASON if window.is_closed else None
        result.append(window)
    return result


def list_windows(date=None):
    windows = DeliveryWindow.objects.all()
    if date is not None:
        windows = windows.filter(date=date)
    return windows.order_by('date', 'start_time')


def get_window(window_id):
    pk = parse_int(window_id)
    window = DeliveryWindow.objects.filter(pk=pk).first() if pk is not None else None
    if window is None:
        raise NotFoundError('Delivery window not found')
    return window


def _save_window(window):
    _check_times(window.start_time, window.end_time)
    duplicates = DeliveryWindow.objects.filter(
        date=window.date, start_time=window.start_time, end_time=window.end_time,
    )
    if window.pk:
        duplicates = duplicates.exclude(pk=window.pk)
    if duplicates.exists():
        raise ConflictError('A delivery window already exists for this time')
    try:
        with transaction.atomic():
            window.save()
    except IntegrityError:
        raise ConflictError('A delivery window already exists for this time')
    return window


def create_window(**fields):
    window = _save_window(DeliveryWindow(current_bookings=0, **fields))
    logger.info(f"Created delivery window {window.id} ({window})")
    return window


def update_window(window_id, **changes):
    window = get_window(window_id)
    for field, value in changes.items():
        setattr(window, field, value)
    window = _save_window(window)
    logger.info(f"Updated delivery window {window.id}: {sorted(changes)}")
    return window


def delete_window(window_id):
    window = get_window(window_id)
    window.delete()
    logger.info(f"Deleted delivery window {window_id}")
    return window


def book_window(window_id, now=None):
    """
    Reserve one slot of a window for an order.

    Must run inside the checkout transaction; the row stays locked until it
    commits so concurrent checkouts cannot overbook.
    """
    if window_id is None:
        raise ValidationFailed('Please select a delivery window')
    window = DeliveryWindow.objects.select_for_update().filter(pk=parse_int(window_id)).first()
    if window is None:
        raise ValidationFailed('Delivery window not found')
    if not window.enabled:
        raise ValidationFailed('This delivery window is not available')
    if is_closed(window, now):
        raise ValidationFailed(CLOSED_REASON)
    if window.is_full:
        raise ValidationFailed(FULL_REASON)

    DeliveryWindow.objects.filter(pk=window.pk).update(current_bookings=F('current_bookings') + 1)
    window.refresh_from_db(fields=['current_bookings'])
    return window


def release_window(window_id):
    """Give back the slot held by a cancelled or deleted order"""
    if window_id is None:
        return
    DeliveryWindow.objects.filter(pk=window_id, current_bookings__gt=0).update(
        current_bookings=F('current_bookings') - 1
    )


# Weekly templates

def list_templates():
    return WeeklyDeliveryTemplate.objects.order_by('day_of_week', 'start_time')


def get_template(template_id):
    pk = parse_int(template_id)
    template = WeeklyDeliveryTemplate.objects.filter(pk=pk).first() if pk is not None else None
    if template is None:
        raise NotFoundError('Weekly template not found')
    return template


def create_template(**fields):
    _check_times(fields.get('start_time'), fields.get('end_time'))
    template = WeeklyDeliveryTemplate.objects.create(**fields)
    logger.info(f"Created weekly template {template.id} ({template})")
    return template


def update_template(template_id, **changes):
    template = get_template(template_id)
    for field, value in changes.items():
        setattr(template, field, value)
    _check_times(template.start_time, template.end_time)
    template.save()
    return template


def delete_template(template_id):
    template = get_template(template_id)
    template.delete()
    logger.info(f"Deleted weekly template {template_id}")
    return template


def generate_windows(days_ahead=BOOKING_DAYS_AHEAD, today=None):
    """
    Create windows from the enabled weekly templates for today through
    `days_ahead` days out. Slots that already exist are skipped.

    Returns (created, skipped).
    """
    days_ahead = parse_int(days_ahead)
    if days_ahead is None or days_ahead < 0:
        raise ValidationFailed('daysAhead must be a non-negative integer')

    today = today or timezone.localdate()
    templates = list(WeeklyDeliveryTemplate.objects.filter(enabled=True))
    created = 0
    skipped = 0

    with transaction.atomic():
        for offset in range(days_ahead + 1):
            day = today + timedelta(days=offset)
            for template in templates:
                if template.day_of_week != day_of_week(day):
                    continue
                _, was_created = DeliveryWindow.objects.get_or_create(
                    date=day, start_time=template.start_time, end_time=template.end_time,
                    defaults={'capacity': template.capacity, 'enabled': True},
                )
                if was_created:
                    created += 1
                else:
                    skipped += 1

    logger.info(f"Generated {created} delivery windows, skipped {skipped} existing")
    return created, skipped
