from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import User
from .models import CourseOffering, Quiz, Question, Option, QuizAttempt, Answer, AuditLog, UserProfile


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    verbose_name_plural = 'Profile'


class UserAdmin(BaseUserAdmin):
    inlines = [UserProfileInline]
    list_display = ['username', 'email', 'first_name', 'last_name', 'get_role', 'is_staff']
    list_filter = ['is_staff', 'is_superuser', 'is_active', 'profile__role']

    def get_role(self, obj):
        return obj.profile.get_role_display() if hasattr(obj, 'profile') else '-'
    get_role.short_description = 'Role'


admin.site.unregister(User)
admin.site.register(User, UserAdmin)


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ['order', 'question_type', 'text', 'points', 'difficulty']
    show_change_link = True


class OptionInline(admin.TabularInline):
    model = Option
    extra = 0
    fields = ['order', 'text', 'is_correct']


class AnswerInline(admin.TabularInline):
    model = Answer
    extra = 0
    readonly_fields = ['question', 'selected_option', 'text_answer', 'points_earned', 'is_correct', 'grading_method', 'feedback']
    can_delete = False


@admin.register(CourseOffering)
class CourseOfferingAdmin(admin.ModelAdmin):
    list_display = ['code', 'course_code', 'course_name', 'semester_name']
    search_fields = ['code', 'course_code', 'course_name']
    ordering = ['code']


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ['title', 'offering', 'status', 'record_state', 'duration', 'total_points', 'passing_score', 'created_at']
    list_filter = ['status', 'record_state', 'offering']
    search_fields = ['title', 'description']
    inlines = [QuestionInline]
    # total_points follows the question set
    readonly_fields = ['total_points', 'created_at', 'updated_at', 'published_at', 'deleted_at']
    fieldsets = (
        (None, {'fields': ('title', 'description', 'offering', 'status', 'record_state')}),
        ('Settings', {'fields': ('duration', 'total_points', 'passing_score', 'shuffle_questions', 'shuffle_options', 'show_results', 'allow_review')}),
        ('Window', {'fields': ('start_time', 'end_time')}),
        ('Metadata', {'fields': ('creator', 'created_at', 'updated_at', 'published_at', 'deleted_at'), 'classes': ('collapse',)}),
    )


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ['id', 'quiz', 'question_type', 'text_preview', 'points', 'order']
    list_filter = ['question_type', 'difficulty']
    search_fields = ['text']
    inlines = [OptionInline]

    def text_preview(self, obj):
        return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
    text_preview.short_description = 'Question'


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ['id', 'student', 'quiz', 'status', 'score', 'percentage', 'submitted_at']
    list_filter = ['status', 'quiz']
    search_fields = ['student__username', 'quiz__title']
    inlines = [AnswerInline]
    readonly_fields = ['started_at', 'submitted_at', 'graded_at', 'score', 'percentage']


@admin.register(Answer)
class AnswerAdmin(admin.ModelAdmin):
    list_display = ['id', 'attempt', 'question', 'is_correct', 'points_earned', 'grading_method']
    list_filter = ['is_correct', 'grading_method']
    readonly_fields = ['answered_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'event_type', 'user', 'description_preview']
    list_filter = ['event_type', 'created_at']
    search_fields = ['user__username', 'description']
    readonly_fields = ['user', 'event_type', 'description', 'metadata', 'created_at']
    ordering = ['-created_at']

    def description_preview(self, obj):
        return obj.description[:50] + '...' if len(obj.description) > 50 else obj.description
    description_preview.short_description = 'Description'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
