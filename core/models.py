"""
Custom User model with email-based authentication.
"""
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.utils import timezone

from utils.ids import generate_object_id


class UserManager(BaseUserManager):
    """Users log in with their email; a display name is mandatory."""

    def _build(self, email, password, **fields):
        if not email:
            raise ValueError('Email is required')
        if not str(fields.get('name') or '').strip():
            raise ValueError('Name is required')

        user = self.model(email=self.normalize_email(email), **fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **fields):
        fields.setdefault('is_staff', False)
        fields.setdefault('is_superuser', False)
        return self._build(email, password, **fields)

    def create_superuser(self, email, password=None, **fields):
        """Superusers are admins for the API and staff for the Django admin."""
        for flag in ('is_staff', 'is_superuser', 'is_admin'):
            if fields.setdefault(flag, True) is not True:
                raise ValueError(f'Superuser must have {flag}=True.')
        return self._build(email, password, **fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    User identified by email. The password column holds a Django hash.
    """
    id = models.CharField(primary_key=True, max_length=24, default=generate_object_id, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=255)
    is_admin = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['is_active'], name='users_is_active_idx'),
        ]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name

    def get_short_name(self):
        return self.name.split()[0] if self.name else self.email
