import bookings.models
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('accepted', 'Accepted'),
    ('arrived', 'Provider Arrived'),
    ('in_progress', 'In Progress'),
    ('payment_pending', 'Payment Pending'),
    ('completed', 'Completed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='JobContainer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('customer_key', models.CharField(max_length=32, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='job_container', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'job_containers',
            },
        ),
        migrations.CreateModel(
            name='Job',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_id', models.CharField(max_length=64, unique=True)),
                ('position', models.PositiveIntegerField()),
                ('service_name', models.CharField(default='General Service', max_length=100)),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('address', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='pending', max_length=20)),
                ('job_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('job_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('notified_provider_ids', models.JSONField(blank=True, default=None, null=True)),
                ('dispatched_at', models.DateTimeField(blank=True, null=True)),
                ('provider_name', models.CharField(blank=True, default='', max_length=150)),
                ('provider_mobile', models.CharField(blank=True, default='', max_length=20)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('container', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='jobs', to='bookings.jobcontainer')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bookings', to=settings.AUTH_USER_MODEL)),
                ('provider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_jobs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'jobs',
                'ordering': ['container_id', 'position'],
            },
        ),
        migrations.AddConstraint(
            model_name='job',
            constraint=models.UniqueConstraint(fields=('container', 'position'), name='unique_container_position'),
        ),
        migrations.CreateModel(
            name='InboxEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_id', models.CharField(db_index=True, max_length=64)),
                ('booking_index', models.PositiveIntegerField()),
                ('customer_key', models.CharField(max_length=32)),
                ('service_name', models.CharField(max_length=100)),
                ('price_snapshot', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('distance_km', models.FloatField(default=0)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='pending', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(default=bookings.models.default_inbox_expiry)),
                ('container', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='bookings.jobcontainer')),
                ('provider', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inbox_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'provider_job_inbox',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='inboxentry',
            constraint=models.UniqueConstraint(fields=('provider', 'booking_id'), name='unique_provider_booking'),
        ),
        migrations.AddIndex(
            model_name='inboxentry',
            index=models.Index(fields=['booking_id', 'status'], name='inbox_booking_status_idx'),
        ),
    ]
