"""Serializers for users and session login."""
from rest_framework import serializers
from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from .models import User

EMAIL_MESSAGE = 'Please provide a valid email address'
PASSWORD_LENGTH_MESSAGE = f'Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long'


class UserSerializer(serializers.ModelSerializer):
    _id = serializers.CharField(source='id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = User
        fields = ['_id', 'name', 'email', 'createdAt']


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'email']


class UserWriteSerializer(serializers.ModelSerializer):
    """
    Validates email and password for signup and account updates.

    Email errors are reported first, then every failing password rule in
    policy order. A missing ``name`` is rejected by the model manager.
    """
    email = serializers.EmailField(
        max_length=255,
        error_messages={'required': EMAIL_MESSAGE, 'blank': EMAIL_MESSAGE, 'invalid': EMAIL_MESSAGE},
    )
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        validators=[validate_password],
        error_messages={'required': PASSWORD_LENGTH_MESSAGE, 'blank': PASSWORD_LENGTH_MESSAGE},
    )
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ['email', 'password', 'name']

    def validate_email(self, value):
        value = value.lower()
        queryset = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data.get('name', '').strip()
        )

    def update(self, instance, validated_data):
        if 'name' in validated_data:
            name = validated_data['name'].strip()
            if not name:
                raise ValueError('Name is required')
            instance.name = name
        if 'email' in validated_data:
            instance.email = validated_data['email']
        if 'password' in validated_data:
            instance.set_password(validated_data['password'])
        instance.save()
        return instance


class UserLoginSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)
    password = serializers.CharField(required=True, write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        email = attrs.get('email', '').lower()
        password = attrs.get('password')

        user = authenticate(request=self.context.get('request'), username=email, password=password)
        if not user:
            raise serializers.ValidationError({'detail': 'Invalid email or password.'})
        if not user.is_active:
            raise serializers.ValidationError({'detail': 'User account is disabled.'})
        attrs['user'] = user
        return attrs
