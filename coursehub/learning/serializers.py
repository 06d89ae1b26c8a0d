from rest_framework import serializers

from .models import Progress


class ProgressSerializer(serializers.ModelSerializer):
    chapterId = serializers.UUIDField(source='chapter_id', read_only=True)
    lastPosition = serializers.IntegerField(source='last_position')
    watchPercentage = serializers.FloatField(source='watch_percentage')
    totalWatchTime = serializers.IntegerField(source='total_watch_time')
    isCompleted = serializers.BooleanField(source='is_completed')
    canSkipAhead = serializers.BooleanField(source='can_skip_ahead')
    firstWatchCompleted = serializers.BooleanField(source='first_watch_completed')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = Progress
        fields = [
            'chapterId', 'lastPosition', 'watchPercentage', 'totalWatchTime',
            'isCompleted', 'canSkipAhead', 'firstWatchCompleted', 'updatedAt',
        ]
        read_only_fields = fields


class ProgressUpdateSerializer(serializers.Serializer):
    currentPosition = serializers.FloatField(min_value=0)
    totalDuration = serializers.FloatField(min_value=0, required=False, default=0)
    watchPercentage = serializers.FloatField(min_value=0, max_value=100)
