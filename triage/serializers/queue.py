from rest_framework import serializers

from triage import sequencing


class QueueCreateSerializer(serializers.Serializer):
    triageId = serializers.UUIDField()
    departmentId = serializers.CharField(max_length=20)
    doctorId = serializers.IntegerField(min_value=1)
    priority = serializers.ChoiceField(choices=sequencing.PRIORITY_LEVELS, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')


class QueueStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=sequencing.STATUSES)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default='')


class QueuePrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=sequencing.PRIORITY_LEVELS)
