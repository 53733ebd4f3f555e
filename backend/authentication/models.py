"""
User model for the maestro back office.

Agents form a supervisor hierarchy used by the star-pool commission;
staff roles (ADMIN, BACKOFFICE) review and reconcile agent work.
"""

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class CustomUserManager(BaseUserManager):
    """
    Custom user model manager where email is the unique identifiers
    for authentication instead of usernames.
    """
    def create_user(self, email, password, **extra_fields):
        """
        Create and save a User with the given email and password.
        """
        if not email:
            raise ValueError('The Email must be set')
        email = self.normalize_email(email)
        if 'username' not in extra_fields:
            extra_fields['username'] = email
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        """
        Create and save a SuperUser with the given email and password.
        """
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Back-office user. ``role`` drives every permission check in the system.
    """
    ROLE_AGENT = 'AGENT'
    ROLE_BACKOFFICE = 'BACKOFFICE'
    ROLE_ADMIN = 'ADMIN'
    ROLE_FINANCE = 'FINANCE'

    ROLE_CHOICES = [
        (ROLE_AGENT, 'Agent'),
        (ROLE_BACKOFFICE, 'Backoffice'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_FINANCE, 'Finance'),
    ]
    STAFF_ROLES = (ROLE_ADMIN, ROLE_BACKOFFICE)

    TIER_CHOICES = [
        ('rookie', 'Rookie'),
        ('1-star', '1-Star'),
        ('2-star', '2-Star'),
        ('3-star', '3-Star'),
        ('4-star', '4-Star'),
    ]

    # Use email as the primary identifier
    username = models.CharField(max_length=150, unique=False, blank=True)
    email = models.EmailField('email address', unique=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_AGENT, db_index=True)
    phone = models.CharField(max_length=30, blank=True, null=True)

    # Agent hierarchy
    supervisor = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subordinates',
    )
    star_level = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(4)]
    )
    tier = models.CharField(max_length=20, choices=TIER_CHOICES, default='rookie')

    objects = CustomUserManager()

    class Meta:
        ordering = ['first_name', 'last_name']
        indexes = [
            models.Index(fields=['role', 'is_active'], name='user_role_active_idx'),
        ]

    def __str__(self):
        return self.email

    @property
    def name(self):
        """Combined name used in notifications, exports and search results"""
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def is_staff_role(self):
        return self.role in self.STAFF_ROLES

    @property
    def is_agent(self):
        return self.role == self.ROLE_AGENT
