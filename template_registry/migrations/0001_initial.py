from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Template',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('template_code', models.CharField(max_length=100)),
                ('version', models.PositiveIntegerField()),
                (
                    'type',
                    models.CharField(
                        choices=[('email_html', 'Email HTML'), ('push_json', 'Push JSON')],
                        max_length=20,
                    ),
                ),
                ('language', models.CharField(default='en', max_length=10)),
                ('content', models.TextField()),
                ('created_by', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_active', models.BooleanField(default=True)),
                ('meta', models.JSONField(blank=True, null=True)),
            ],
            options={
                'db_table': 'templates',
                'ordering': ['-version', 'language'],
                'indexes': [
                    models.Index(fields=['template_code', 'language', 'is_active'], name='templates_lookup_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('template_code', 'language', 'version'),
                        name='template_code_language_version_unique',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(version__gte=1),
                        name='template_version_positive',
                    ),
                ],
            },
        ),
    ]
