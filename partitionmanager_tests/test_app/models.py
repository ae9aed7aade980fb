from django.db import models


class Measurement(models.Model):
    """
    A time series row. Unmanaged: the partition manager creates its table.
    """

    sensor = models.CharField(max_length=64, db_index=True)
    region = models.CharField(max_length=16)
    value = models.FloatField()
    recorded_at = models.DateField()

    class Meta:
        managed = False
        db_table = "measurement"
        indexes = [
            models.Index(fields=["region", "-recorded_at"], name="measurement_region_idx"),
        ]


class Station(models.Model):
    name = models.CharField(max_length=64)

    class Meta:
        managed = False
        db_table = "station"


class Reading(models.Model):
    """
    A measurement that references its station.
    """

    station = models.ForeignKey(Station, on_delete=models.CASCADE)
    value = models.FloatField()
    taken_on = models.DateField()

    class Meta:
        managed = False
        db_table = "reading"


class Alert(models.Model):
    level = models.CharField(max_length=16)
    raised_on = models.DateField()

    class Meta:
        managed = False
        db_table = "alert"
        indexes = [
            models.Index(
                fields=["raised_on"],
                condition=models.Q(level="critical"),
                name="alert_critical_idx",
            ),
        ]
