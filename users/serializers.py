from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'role',
            'phone',
            'bio',
            'location',
            'profile_picture',
            'skills',
            'certifications',
            'hourly_rate',
            'years_experience',
            'is_available',
            'verification_status',
            'date_joined',
        ]
        read_only_fields = ['role', 'verification_status', 'date_joined']


class PublicUserSerializer(serializers.ModelSerializer):
    """Compact representation embedded in project / application payloads."""

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role']


class UpdateProfileSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = [
            'first_name', 'last_name', 'phone', 'bio', 'location', 'profile_picture',
            'skills', 'certifications', 'hourly_rate', 'years_experience',
            'is_available', 'password',
        ]

    def validate_skills(self, value):
        if not all(isinstance(skill, str) for skill in value):
            raise serializers.ValidationError("Skills must be a list of strings.")
        return value

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance
