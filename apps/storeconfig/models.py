from django.db import models


class Setting(models.Model):
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    description = models.CharField(max_length=255, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    @property
    def is_cost(self):
        return self.key.endswith("Cost")

    def __str__(self):
        return f"{self.key}={self.value}"


class AdminSettings(models.Model):
    SINGLETON_ID = 1

    admin_name = models.CharField(max_length=100, blank=True)
    admin_phone = models.CharField(max_length=30, blank=True)
    business_name = models.CharField(max_length=120, blank=True)
    business_address = models.CharField(max_length=255, blank=True)
    business_phone = models.CharField(max_length=30, blank=True)
    bank_account = models.CharField(max_length=120, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "admin settings"
        verbose_name_plural = "admin settings"

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_ID
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        instance, _ = cls.objects.get_or_create(pk=cls.SINGLETON_ID)
        return instance

    def __str__(self):
        return self.business_name or "admin settings"


class ContentType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"


class DashboardContent(models.Model):
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    type = models.CharField(max_length=10, choices=ContentType.choices, default=ContentType.TEXT)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self):
        return self.key
