"""
API Views for the University Quiz Engine.
Thin adapters over the quiz services: authorize, validate input, call the
service, serialize the result. Every response uses the action result envelope.
"""
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import (
    extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample, OpenApiResponse
)

from quizzes.grading import build_selection
from quizzes.models import CourseOffering, Quiz, Question, QuizAttempt, Answer
from quizzes.permissions import (
    HasQuizPermission, QUIZ_VIEW, QUIZ_CREATE, QUIZ_EDIT, QUIZ_PUBLISH,
    QUIZ_DELETE, QUIZ_TAKE, QUIZ_GRADE,
)
from quizzes.services import QuizBuilder, AttemptEngine, GradingCoordinator
from quizzes.throttling import AnswerRateThrottle, SubmissionRateThrottle, GradingRateThrottle
from .results import ActionResultMixin
from .serializers import (
    CourseOfferingSerializer, QuestionSerializer, QuestionCreateSerializer,
    QuizListSerializer, QuizDetailSerializer, QuizCreateSerializer,
    AnswerSerializer, AnswerSubmitSerializer, AnswerGradeSerializer,
    AttemptSummarySerializer, AttemptDetailSerializer, PendingAnswerSerializer,
)


class QuizEngineViewSet(ActionResultMixin, viewsets.GenericViewSet):
    """
    Base for service-backed viewsets.

    `permission_codes` maps each action to the permission it needs, checked
    before any input is parsed. The services check again on their own.
    """
    permission_classes = [IsAuthenticated, HasQuizPermission]
    permission_codes = {}
    filter_backends = []

    def paginated(self, queryset, serializer_class):
        page = self.paginate_queryset(queryset)
        context = self.get_serializer_context()
        if page is not None:
            data = serializer_class(page, many=True, context=context).data
            return self.get_paginated_response(data)
        return Response(serializer_class(queryset, many=True, context=context).data)

    def serialize(self, serializer_class, instance, status_code=status.HTTP_200_OK, **context):
        context.update(self.get_serializer_context())
        return Response(serializer_class(instance, context=context).data, status=status_code)


# =============================================================================
# OFFERINGS
# =============================================================================

@extend_schema_view(
    list=extend_schema(summary="List course offerings"),
    retrieve=extend_schema(summary="Get course offering"),
)
@extend_schema(tags=['Offerings'])
class CourseOfferingViewSet(ActionResultMixin, viewsets.ReadOnlyModelViewSet):
    """Read-only catalog of course offerings quizzes are attached to."""
    queryset = CourseOffering.objects.order_by('code')
    serializer_class = CourseOfferingSerializer
    permission_classes = [IsAuthenticated, HasQuizPermission]
    permission_codes = {'list': QUIZ_VIEW, 'retrieve': QUIZ_VIEW}
    filterset_fields = ['course_code', 'semester_name']
    search_fields = ['code', 'course_code', 'course_name']
    ordering_fields = ['code', 'course_code', 'created_at']


# =============================================================================
# QUIZZES
# =============================================================================

@extend_schema_view(
    list=extend_schema(
        summary="List quizzes",
        description="""
Returns a paginated list of quizzes.

**Students** see only published and closed quizzes.
**Instructors/Admins** see all quizzes including drafts.
""",
        parameters=[
            OpenApiParameter(name='offering', type=str, location='query', description='Filter by offering ID'),
            OpenApiParameter(name='status', type=str, location='query', description='draft, published, closed or ALL'),
        ],
        responses=QuizListSerializer(many=True),
    ),
    retrieve=extend_schema(
        summary="Get quiz details",
        description="Quiz with its questions. Correct options and explanations are hidden from students.",
        responses=QuizDetailSerializer,
    ),
    create=extend_schema(
        summary="Create quiz",
        description="Create a new quiz in draft status. **Requires Instructor or Admin role.**",
        request=QuizCreateSerializer,
        responses={201: QuizDetailSerializer},
        examples=[
            OpenApiExample(
                'Request Example',
                value={
                    "title": "Week 3 Quiz",
                    "description": "Loops and functions",
                    "duration": 30,
                    "passing_score": 60,
                    "shuffle_questions": True,
                    "show_results": False,
                    "start_time": "2026-10-20T09:00:00Z",
                    "end_time": "2026-10-20T18:00:00Z"
                },
                request_only=True
            )
        ]
    ),
    destroy=extend_schema(
        summary="Delete quiz",
        description="Soft delete. Refused once students have attempted the quiz.",
        responses={200: OpenApiResponse(description="Quiz deleted")},
    ),
)
@extend_schema(tags=['Quizzes'])
class QuizViewSet(QuizEngineViewSet):
    queryset = Quiz.objects.active()
    serializer_class = QuizDetailSerializer
    permission_codes = {
        'list': QUIZ_VIEW,
        'retrieve': QUIZ_VIEW,
        'create': QUIZ_CREATE,
        'destroy': QUIZ_DELETE,
        'publish': QUIZ_PUBLISH,
        'close': QUIZ_EDIT,
        'questions': QUIZ_EDIT,
        'start': QUIZ_TAKE,
        'attempts': QUIZ_GRADE,
    }

    def list(self, request):
        quizzes = QuizBuilder.list_quizzes(
            request.user,
            offering_id=request.query_params.get('offering'),
            status=request.query_params.get('status'),
        )
        return self.paginated(quizzes, QuizListSerializer)

    def retrieve(self, request, pk=None):
        return self.serialize(QuizDetailSerializer, QuizBuilder.get_quiz(request.user, pk))

    def create(self, request):
        serializer = QuizCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quiz = QuizBuilder.create_quiz(request.user, **serializer.validated_data)
        return self.serialize(QuizDetailSerializer, quiz, status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        QuizBuilder.delete_quiz(request.user, pk)
        return Response({'id': pk, 'deleted': True})

    @extend_schema(
        summary="Publish quiz",
        description="Make a quiz available to students. Requires at least one question.",
        request=None,
        responses={200: QuizDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        return self.serialize(QuizDetailSerializer, QuizBuilder.publish_quiz(request.user, pk))

    @extend_schema(summary="Close quiz", request=None, responses={200: QuizDetailSerializer})
    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        return self.serialize(QuizDetailSerializer, QuizBuilder.close_quiz(request.user, pk))

    @extend_schema(
        summary="Add question",
        description="""
Add a question to a quiz. **Requires Instructor or Admin role.**

**Question Types:**
- `multiple_choice` - two or more options, at least one correct
- `true_false` - exactly two options
- `short_answer` - no options, graded manually after submission
""",
        request=QuestionCreateSerializer,
        responses={201: QuestionSerializer},
        examples=[
            OpenApiExample(
                'Multiple Choice Example',
                value={
                    "question_type": "multiple_choice",
                    "text": "What is 2 + 2?",
                    "points": 2,
                    "options": [
                        {"text": "3", "is_correct": False},
                        {"text": "4", "is_correct": True}
                    ]
                },
                request_only=True
            ),
        ]
    )
    @action(detail=True, methods=['post'])
    def questions(self, request, pk=None):
        serializer = QuestionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        question = QuizBuilder.add_question(request.user, pk, **serializer.validated_data)
        return self.serialize(QuestionSerializer, question, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Start or resume attempt",
        description="""
Start the current student's attempt on a published quiz inside its time window.

Calling this again while the attempt is in progress returns the same attempt.
Once the attempt is submitted, starting again is refused with `conflict`.
""",
        tags=['Attempts'],
        request=None,
        responses={200: AttemptDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        attempt = AttemptEngine.start_attempt(request.user, pk)
        return self.serialize(AttemptDetailSerializer, attempt)

    @extend_schema(
        summary="List quiz attempts",
        description="All attempts of a quiz, newest first. **Requires Instructor or Admin role.**",
        tags=['Attempts'],
        responses={200: AttemptSummarySerializer(many=True)},
    )
    @action(detail=True, methods=['get'])
    def attempts(self, request, pk=None):
        return self.paginated(AttemptEngine.list_attempts(request.user, pk), AttemptSummarySerializer)


# =============================================================================
# QUESTIONS
# =============================================================================

@extend_schema(tags=['Questions'])
class QuestionViewSet(QuizEngineViewSet):
    queryset = Question.objects.all()
    serializer_class = QuestionSerializer
    permission_codes = {'destroy': QUIZ_EDIT}

    @extend_schema(
        summary="Delete question",
        description="Remove a question; the quiz point total is recomputed.",
        responses={200: QuizDetailSerializer},
    )
    def destroy(self, request, pk=None):
        return self.serialize(QuizDetailSerializer, QuizBuilder.delete_question(request.user, pk))


# =============================================================================
# ATTEMPTS
# =============================================================================

@extend_schema(tags=['Attempts'])
class AttemptViewSet(QuizEngineViewSet):
    queryset = QuizAttempt.objects.all()
    serializer_class = AttemptDetailSerializer
    permission_codes = {
        'retrieve': (QUIZ_TAKE, QUIZ_GRADE),
        'answers': QUIZ_TAKE,
        'submit': QUIZ_TAKE,
    }

    @extend_schema(
        summary="Get attempt",
        description="Students see their own attempts; instructors see any attempt.",
        responses=AttemptDetailSerializer,
    )
    def retrieve(self, request, pk=None):
        return self.serialize(AttemptDetailSerializer, AttemptEngine.get_attempt(request.user, pk))

    @extend_schema(
        summary="Save answer",
        description="""
Save the answer to one question. Answering the same question again replaces
the earlier answer. Objective questions are graded immediately, but the
grade is not returned until the attempt is submitted.
""",
        request=AnswerSubmitSerializer,
        responses={200: AnswerSerializer},
        examples=[
            OpenApiExample(
                'Option Example',
                value={"question_id": "6f1c...", "selected_option_id": "0b2e..."},
                request_only=True
            ),
            OpenApiExample(
                'Text Example',
                value={"question_id": "6f1c...", "text_answer": "A function that wraps another function."},
                request_only=True
            ),
        ]
    )
    @action(detail=True, methods=['post'], throttle_classes=[AnswerRateThrottle])
    def answers(self, request, pk=None):
        serializer = AnswerSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        selection = build_selection(data.get('selected_option_id'), data.get('text_answer'))
        answer = AttemptEngine.submit_answer(request.user, pk, data['question_id'], selection)
        return self.serialize(
            AnswerSerializer, answer,
            hide_results=answer.attempt.is_in_progress or not answer.attempt.quiz.show_results
        )

    @extend_schema(
        summary="Submit attempt",
        description="""
Close the attempt and score it. Allowed once.

The attempt becomes `graded` when every answer has a score, or `submitted`
while short answers wait for manual grading.
""",
        request=None,
        responses={200: AttemptDetailSerializer},
    )
    @action(detail=True, methods=['post'], throttle_classes=[SubmissionRateThrottle])
    def submit(self, request, pk=None):
        attempt = AttemptEngine.submit_attempt(request.user, pk)
        return self.serialize(AttemptDetailSerializer, attempt)


# =============================================================================
# GRADING
# =============================================================================

@extend_schema(tags=['Grading'])
class AnswerViewSet(QuizEngineViewSet):
    queryset = Answer.objects.all()
    serializer_class = AnswerSerializer
    permission_codes = {'grade': QUIZ_GRADE, 'pending': QUIZ_GRADE}

    @extend_schema(
        summary="Grade answer",
        description="""
Manually grade one answer of a submitted attempt. **Requires Instructor or Admin role.**

The attempt score is recomputed from all of its answers; it becomes `graded`
once no answer is left without points.
""",
        request=AnswerGradeSerializer,
        responses={200: AnswerSerializer},
        examples=[
            OpenApiExample(
                'Request Example',
                value={"points_earned": 3, "feedback": "Mentions wrapping but not behaviour."},
                request_only=True
            )
        ]
    )
    @action(detail=True, methods=['post'], throttle_classes=[GradingRateThrottle])
    def grade(self, request, pk=None):
        serializer = AnswerGradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        answer = GradingCoordinator.grade_answer(
            request.user, pk,
            serializer.validated_data['points_earned'],
            serializer.validated_data.get('feedback'),
        )
        return self.serialize(AnswerSerializer, answer)

    @extend_schema(
        summary="Grading queue",
        description="Answers on submitted attempts still waiting for a manual grade, oldest submission first.",
        parameters=[
            OpenApiParameter(name='quiz', type=str, location='query', description='Filter by quiz ID'),
        ],
        responses={200: PendingAnswerSerializer(many=True)},
    )
    @action(detail=False, methods=['get'])
    def pending(self, request):
        answers = GradingCoordinator.pending_answers(request.user, request.query_params.get('quiz'))
        return self.paginated(answers, PendingAnswerSerializer)
