import random
from decimal import Decimal

from rest_framework import serializers
from drf_spectacular.utils import extend_schema_field

from quizzes.models import CourseOffering, Quiz, Question, Option, QuizAttempt, Answer
from quizzes.permissions import QUIZ_EDIT, QUIZ_GRADE, has_permission


def _request_has(context, code):
    request = context.get('request')
    return bool(request and has_permission(request.user, code))


class CourseOfferingSerializer(serializers.ModelSerializer):
    class Meta:
        model = CourseOffering
        fields = ['id', 'code', 'course_code', 'course_name', 'semester_name']
        read_only_fields = fields


class StudentSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    name = serializers.SerializerMethodField()
    academic_id = serializers.SerializerMethodField()

    def get_name(self, obj) -> str:
        return obj.profile.display_name if hasattr(obj, 'profile') else obj.username

    def get_academic_id(self, obj) -> str:
        return obj.profile.academic_id if hasattr(obj, 'profile') else ''


# Questions

class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'text', 'is_correct', 'order']


class QuestionSerializer(serializers.ModelSerializer):
    options = OptionSerializer(many=True, read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'quiz', 'question_type', 'difficulty', 'text', 'explanation',
            'points', 'order', 'is_ai_generated', 'options'
        ]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not _request_has(self.context, QUIZ_EDIT):
            data.pop('explanation', None)
            for option in data.get('options', []):
                option.pop('is_correct', None)
        return data


class OptionInputSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=500)
    is_correct = serializers.BooleanField(default=False)


class QuestionCreateSerializer(serializers.Serializer):
    question_type = serializers.ChoiceField(choices=Question.QuestionType.choices)
    text = serializers.CharField(min_length=3)
    explanation = serializers.CharField(required=False, allow_blank=True, default='')
    points = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0.5'))
    difficulty = serializers.ChoiceField(choices=Question.Difficulty.choices, default=Question.Difficulty.MEDIUM)
    options = OptionInputSerializer(many=True, required=False, default=list)
    is_ai_generated = serializers.BooleanField(default=False)


# Quizzes

class QuizListSerializer(serializers.ModelSerializer):
    offering_code = serializers.CharField(source='offering.code', read_only=True, default=None)
    course_name = serializers.CharField(source='offering.course_name', read_only=True, default=None)
    creator_name = serializers.SerializerMethodField()
    question_count = serializers.IntegerField(read_only=True)
    attempt_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Quiz
        fields = [
            'id', 'title', 'description', 'offering', 'offering_code', 'course_name',
            'status', 'duration', 'total_points', 'passing_score',
            'shuffle_questions', 'shuffle_options', 'show_results', 'allow_review',
            'start_time', 'end_time', 'creator_name',
            'question_count', 'attempt_count', 'created_at', 'published_at'
        ]

    def get_creator_name(self, obj) -> str | None:
        if obj.creator is None:
            return None
        return obj.creator.get_full_name() or obj.creator.username


class QuizDetailSerializer(QuizListSerializer):
    questions = QuestionSerializer(many=True, read_only=True)
    question_count = serializers.SerializerMethodField()
    attempt_count = None

    class Meta(QuizListSerializer.Meta):
        fields = [f for f in QuizListSerializer.Meta.fields if f != 'attempt_count'] + ['questions']

    def get_question_count(self, obj) -> int:
        return len(obj.questions.all())


class QuizCreateSerializer(serializers.Serializer):
    title = serializers.CharField(min_length=2, max_length=300)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    offering = serializers.PrimaryKeyRelatedField(
        queryset=CourseOffering.objects.all(), required=False, allow_null=True, default=None
    )
    duration = serializers.IntegerField(min_value=5, max_value=300)
    passing_score = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, default=60)
    shuffle_questions = serializers.BooleanField(default=False)
    shuffle_options = serializers.BooleanField(default=False)
    show_results = serializers.BooleanField(default=True)
    allow_review = serializers.BooleanField(default=True)
    start_time = serializers.DateTimeField(required=False, allow_null=True, default=None)
    end_time = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate(self, data):
        if data.get('start_time') and data.get('end_time') and data['end_time'] <= data['start_time']:
            raise serializers.ValidationError("The end time must be after the start time.")
        return data


# Attempts and answers

class AnswerSerializer(serializers.ModelSerializer):
    question_text = serializers.CharField(source='question.text', read_only=True)
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    max_points = serializers.DecimalField(source='question.points', max_digits=5, decimal_places=2, read_only=True)

    class Meta:
        model = Answer
        fields = [
            'id', 'question', 'question_text', 'question_type',
            'selected_option', 'text_answer',
            'points_earned', 'max_points', 'is_correct', 'feedback',
            'grading_method', 'answered_at'
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get('hide_results'):
            data['is_correct'] = None
            data['points_earned'] = None
            data['feedback'] = None
        return data


class AnswerSubmitSerializer(serializers.Serializer):
    question_id = serializers.UUIDField()
    selected_option_id = serializers.UUIDField(required=False, allow_null=True)
    text_answer = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, data):
        if not data.get('text_answer') and data.get('selected_option_id') is None:
            raise serializers.ValidationError("Either text_answer or selected_option_id must be provided")
        return data


class AnswerGradeSerializer(serializers.Serializer):
    points_earned = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0)
    feedback = serializers.CharField(required=False, allow_blank=True)


class AttemptSummarySerializer(serializers.ModelSerializer):
    student = StudentSummarySerializer(read_only=True)
    passed = serializers.BooleanField(read_only=True, allow_null=True)

    class Meta:
        model = QuizAttempt
        fields = [
            'id', 'quiz', 'student', 'status', 'score', 'percentage', 'passed',
            'started_at', 'submitted_at', 'graded_at'
        ]
        read_only_fields = fields


class AttemptDetailSerializer(AttemptSummarySerializer):
    quiz_title = serializers.CharField(source='quiz.title', read_only=True)
    total_points = serializers.DecimalField(source='quiz.total_points', max_digits=7, decimal_places=2, read_only=True)
    time_remaining = serializers.IntegerField(read_only=True, allow_null=True)
    questions = serializers.SerializerMethodField()
    answers = AnswerSerializer(many=True, read_only=True)

    class Meta(AttemptSummarySerializer.Meta):
        fields = AttemptSummarySerializer.Meta.fields + [
            'quiz_title', 'total_points', 'time_remaining', 'questions', 'answers'
        ]
        read_only_fields = fields

    @extend_schema_field(QuestionSerializer(many=True))
    def get_questions(self, obj):
        """Questions in the order this attempt presents them."""
        questions = list(obj.quiz.questions.all())
        if obj.quiz.shuffle_questions:
            random.Random(str(obj.id)).shuffle(questions)

        data = QuestionSerializer(questions, many=True, context=self.context).data
        if obj.quiz.shuffle_options:
            for question in data:
                random.Random(f"{obj.id}:{question['id']}").shuffle(question['options'])
        return data

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if _request_has(self.context, QUIZ_GRADE):
            return data

        quiz = instance.quiz
        if not instance.is_in_progress and not quiz.allow_review:
            data['answers'] = []
        # Grades stay hidden while the attempt is open, and until grading when the quiz hides results
        if instance.is_in_progress or (not quiz.show_results and instance.status != QuizAttempt.Status.GRADED):
            for answer in data.get('answers', []):
                answer['is_correct'] = None
                answer['feedback'] = None
                answer['points_earned'] = None
            data['score'] = None
            data['percentage'] = None
        return data


class PendingAnswerSerializer(serializers.ModelSerializer):
    attempt_id = serializers.UUIDField(source='attempt.id', read_only=True)
    quiz_id = serializers.UUIDField(source='attempt.quiz.id', read_only=True)
    quiz_title = serializers.CharField(source='attempt.quiz.title', read_only=True)
    student_username = serializers.CharField(source='attempt.student.username', read_only=True)
    question_text = serializers.CharField(source='question.text', read_only=True)
    max_points = serializers.DecimalField(source='question.points', max_digits=5, decimal_places=2, read_only=True)
    submitted_at = serializers.DateTimeField(source='attempt.submitted_at', read_only=True)

    class Meta:
        model = Answer
        fields = [
            'id', 'attempt_id', 'quiz_id', 'quiz_title', 'student_username',
            'question', 'question_text', 'max_points', 'text_answer', 'submitted_at'
        ]
        read_only_fields = fields
