from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='School',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('short_name', models.CharField(blank=True, help_text='Short name for sidebar display', max_length=20)),
                ('code', models.SlugField(help_text='Stable identifier used by management commands (e.g., demo)', max_length=30, unique=True)),
                ('headmaster_name', models.CharField(blank=True, max_length=100, verbose_name="Head's Name")),
                ('headmaster_title', models.CharField(blank=True, default='Headmaster', max_length=50, verbose_name="Head's Title")),
                ('is_active', models.BooleanField(default=True)),
                ('created_on', models.DateField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'School',
                'verbose_name_plural': 'Schools',
                'ordering': ['name'],
            },
        ),
    ]
