from datetime import timedelta

from django.conf import settings
from django.db import models, transaction
from django.db.models import Max
from django.utils import timezone


class JobStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACCEPTED = 'accepted', 'Accepted'
    ARRIVED = 'arrived', 'Provider Arrived'
    IN_PROGRESS = 'in_progress', 'In Progress'
    PAYMENT_PENDING = 'payment_pending', 'Payment Pending'
    COMPLETED = 'completed', 'Completed'


class JobContainer(models.Model):
    """Per-customer, append-only list of jobs. Jobs are addressed by (container, position)."""

    customer = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='job_container'
    )
    # Customer phone number; the key providers see in their inbox pointers
    customer_key = models.CharField(max_length=32, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'job_containers'

    def __str__(self):
        return f"Jobs of {self.customer_key}"

    def append_job(self, **fields) -> "Job":
        """
        Append a job at the end of this container.

        The container row is locked for the duration of the append so that
        concurrent appends for the same customer get distinct positions.
        """
        with transaction.atomic():
            container = JobContainer.objects.select_for_update().get(pk=self.pk)
            last = container.jobs.aggregate(last=Max('position'))['last']
            position = 0 if last is None else last + 1
            job = Job.objects.create(
                container=container,
                position=position,
                customer_id=container.customer_id,
                **fields,
            )
            container.save(update_fields=['updated_at'])
        return job


class Job(models.Model):
    """A single booking. The source of truth for status and assignment."""

    booking_id = models.CharField(max_length=64, unique=True)

    container = models.ForeignKey(
        JobContainer,
        on_delete=models.CASCADE,
        related_name='jobs'
    )
    position = models.PositiveIntegerField()

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bookings'
    )

    service_name = models.CharField(max_length=100, default='General Service')
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    address = models.TextField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.PENDING)

    # Written once by dispatch
    job_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    job_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    notified_provider_ids = models.JSONField(null=True, blank=True, default=None)
    dispatched_at = models.DateTimeField(null=True, blank=True)

    # Written once by the accept transaction
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_jobs'
    )
    provider_name = models.CharField(max_length=150, blank=True, default='')
    provider_mobile = models.CharField(max_length=20, blank=True, default='')
    accepted_at = models.DateTimeField(null=True, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'jobs'
        ordering = ['container_id', 'position']
        constraints = [
            models.UniqueConstraint(
                fields=['container', 'position'],
                name='unique_container_position'
            )
        ]

    def __str__(self):
        return f"Job {self.booking_id} - {self.service_name} - {self.status}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # Remember the stored status so post_save can detect changes
        instance._loaded_status = instance.__dict__.get('status')
        return instance

    @property
    def status_changed(self) -> bool:
        loaded = getattr(self, '_loaded_status', None)
        return loaded is not None and loaded != self.status

    def was_notified(self, provider_id: int) -> bool:
        return provider_id in (self.notified_provider_ids or [])


def default_inbox_expiry():
    minutes = settings.JOB_DISPATCH.get('INBOX_ENTRY_TTL_MINUTES', 30)
    return timezone.now() + timedelta(minutes=minutes)


class InboxEntryQuerySet(models.QuerySet):
    def active(self, now=None):
        return self.filter(expires_at__gte=now or timezone.now())

    def expired(self, now=None):
        return self.filter(expires_at__lt=now or timezone.now())


class InboxEntry(models.Model):
    """
    Per-provider pointer to an open job with a listing snapshot.

    Not authoritative: on any conflict the Job row wins, and entries may be
    deleted at any time.
    """

    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='inbox_entries'
    )
    booking_id = models.CharField(max_length=64, db_index=True)

    # Pointer back to the job: (container, position)
    container = models.ForeignKey(
        JobContainer,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    booking_index = models.PositiveIntegerField()
    customer_key = models.CharField(max_length=32)

    # Snapshot at dispatch time
    service_name = models.CharField(max_length=100)
    price_snapshot = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    distance_km = models.FloatField(default=0)

    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.PENDING)

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(default=default_inbox_expiry)

    objects = InboxEntryQuerySet.as_manager()

    class Meta:
        db_table = 'provider_job_inbox'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['provider', 'booking_id'],
                name='unique_provider_booking'
            )
        ]
        indexes = [
            models.Index(fields=['booking_id', 'status'], name='inbox_booking_status_idx'),
        ]

    def __str__(self):
        return f"Inbox {self.provider_id} -> {self.booking_id} ({self.status})"

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) > self.expires_at
