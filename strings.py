# strings.py
# Fixed Arabic / English string tables.

from datetime import date

TRANSLATIONS = {
    "en": {
        "appTitle": "DoseWise",
        "home": "Home",
        "measurements": "Measurements",
        "statistics": "Statistics",
        "profile": "Profile",
        "settings": "Settings",
        "welcomeBack": "Welcome back",
        "today": "Today",
        "yesterday": "Yesterday",
        "days": "days",
        "streak": "Day streak",
        "todaySchedule": "Today's schedule",
        "addMedicine": "Add medicine",
        "addNewMedicine": "Add a new medicine",
        "noMedicines": "No medicines added yet",
        "taken": "Taken",
        "confirm": "Confirm",
        "activeMedicines": "Active medicines",
        "adherenceRate": "Adherence rate",
        "dailyDoses": "Daily doses",
        "timesPerDay": "times/day",
        "criticalAlert": "Critical alert",
        "overdueMessage": "The following doses are more than 30 minutes late.",
        "overdueCount": "overdue medication(s)",
        "scheduled": "Scheduled:",
        "minutesLate": "minutes late",
        "hoursLate": "hours late",
        "dismiss": "Dismiss",
        "viewMedicines": "View medicines",
        "medicineName": "Medicine name",
        "dosage": "Dosage",
        "medicineType": "Medicine type",
        "frequency": "Frequency",
        "medicationTimes": "Medication times",
        "addAnotherTime": "Add another time",
        "saveMedicine": "Save medicine",
        "cancel": "Cancel",
        "save": "Save",
        "medicine": "Medicine",
        "vitamin": "Vitamin",
        "supplement": "Supplement",
        "birthControl": "Birth control",
        "insulin": "Insulin",
        "other": "Other",
        "daily": "Daily",
        "everyTwoDays": "Every two days",
        "weekly": "Weekly",
        "asNeeded": "As needed",
        "bloodPressure": "Blood pressure",
        "glucose": "Glucose",
        "weight": "Weight",
        "systolic": "Systolic",
        "diastolic": "Diastolic",
        "value": "Value",
        "notes": "Notes",
        "latest": "Latest",
        "average": "Average",
        "noMeasurements": "No measurements yet",
        "addMeasurement": "Add measurement",
        "week": "Week",
        "month": "Month",
        "year": "Year",
        "typeDistribution": "Medicine types",
        "familyMembers": "Family members",
        "addFamilyMember": "Add family member",
        "name": "Name",
        "relation": "Relation",
        "active": "Active",
        "appearance": "Appearance",
        "lightMode": "Light",
        "darkMode": "Dark",
        "language": "Language",
        "criticalNotifications": "Critical notifications",
        "debugLog": "Debug log",
        "clearLog": "Clear log",
        "status_taken": "Taken",
        "status_overdue": "Overdue",
        "status_due_soon": "Due soon",
        "status_upcoming": "Upcoming",
        "enterNameDosage": "Please enter medicine name and dosage",
        "addAtLeastOneTime": "Add at least one time",
        "invalidTime": "Times must be HH:MM (24-hour)",
        "invalidFrequency": "Unknown frequency",
        "invalidMeasurement": "Please enter a valid measurement",
        "enterName": "Please enter a name",
        "unknownMember": "Unknown family member",
        "saveFailed": "Could not save, please try again",
        "trend": "Trend",
    },
    "ar": {
        "appTitle": "DoseWise",
        "home": "الرئيسية",
        "measurements": "القياسات",
        "statistics": "الإحصائيات",
        "profile": "الملف الشخصي",
        "settings": "الإعدادات",
        "welcomeBack": "مرحباً بعودتك",
        "today": "اليوم",
        "yesterday": "أمس",
        "days": "أيام",
        "streak": "سلسلة الأيام",
        "todaySchedule": "جدول اليوم",
        "addMedicine": "إضافة دواء",
        "addNewMedicine": "إضافة دواء جديد",
        "noMedicines": "لا توجد أدوية مضافة",
        "taken": "تم التناول",
        "confirm": "تأكيد",
        "activeMedicines": "الأدوية النشطة",
        "adherenceRate": "نسبة الالتزام",
        "dailyDoses": "جرعات يومية",
        "timesPerDay": "مرة/يوم",
        "criticalAlert": "تنبيه حرج",
        "overdueMessage": "الجرعات التالية متأخرة أكثر من 30 دقيقة.",
        "overdueCount": "دواء متأخر",
        "scheduled": "الوقت المحدد:",
        "minutesLate": "دقيقة تأخير",
        "hoursLate": "ساعة تأخير",
        "dismiss": "تجاهل",
        "viewMedicines": "عرض الأدوية",
        "medicineName": "اسم الدواء",
        "dosage": "الجرعة",
        "medicineType": "نوع الدواء",
        "frequency": "التكرار",
        "medicationTimes": "أوقات الدواء",
        "addAnotherTime": "إضافة وقت آخر",
        "saveMedicine": "حفظ الدواء",
        "cancel": "إلغاء",
        "save": "حفظ",
        "medicine": "دواء",
        "vitamin": "فيتامين",
        "supplement": "مكمل غذائي",
        "birthControl": "حبوب منع الحمل",
        "insulin": "أنسولين",
        "other": "أخرى",
        "daily": "يومياً",
        "everyTwoDays": "كل يومين",
        "weekly": "أسبوعياً",
        "asNeeded": "عند الحاجة",
        "bloodPressure": "ضغط الدم",
        "glucose": "السكر",
        "weight": "الوزن",
        "systolic": "الانقباضي",
        "diastolic": "الانبساطي",
        "value": "القيمة",
        "notes": "ملاحظات",
        "latest": "آخر قياس",
        "average": "المتوسط",
        "noMeasurements": "لا توجد قياسات بعد",
        "addMeasurement": "إضافة قياس",
        "week": "أسبوع",
        "month": "شهر",
        "year": "سنة",
        "typeDistribution": "توزيع أنواع الأدوية",
        "familyMembers": "أفراد العائلة",
        "addFamilyMember": "إضافة فرد من العائلة",
        "name": "الاسم",
        "relation": "صلة القرابة",
        "active": "نشط",
        "appearance": "المظهر",
        "lightMode": "فاتح",
        "darkMode": "داكن",
        "language": "اللغة",
        "criticalNotifications": "التنبيهات الحرجة",
        "debugLog": "سجل التصحيح",
        "clearLog": "مسح السجل",
        "status_taken": "تم التناول",
        "status_overdue": "متأخر",
        "status_due_soon": "قريباً",
        "status_upcoming": "قادم",
        "enterNameDosage": "الرجاء إدخال اسم الدواء والجرعة",
        "addAtLeastOneTime": "أضف وقتاً واحداً على الأقل",
        "invalidTime": "يجب أن يكون الوقت بصيغة HH:MM",
        "invalidFrequency": "تكرار غير معروف",
        "invalidMeasurement": "الرجاء إدخال قياس صحيح",
        "enterName": "الرجاء إدخال الاسم",
        "unknownMember": "فرد غير معروف",
        "saveFailed": "تعذر الحفظ، حاول مرة أخرى",
        "trend": "الاتجاه",
    },
}

DAY_NAMES = {
    "en": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
    "ar": ["الاثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة", "السبت", "الأحد"],
}

MONTH_NAMES = {
    "en": ["January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"],
    "ar": ["يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو", "يوليو",
           "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر"],
}

_TYPE_KEYS = {"medicine": "medicine", "vitamin": "vitamin", "supplement": "supplement",
              "birth-control": "birthControl", "insulin": "insulin", "other": "other"}
_FREQUENCY_KEYS = {"daily": "daily", "every-two-days": "everyTwoDays",
                   "weekly": "weekly", "as-needed": "asNeeded"}
_KIND_KEYS = {"blood-pressure": "bloodPressure", "glucose": "glucose", "weight": "weight"}


def tr(language: str, key: str) -> str:
    table = TRANSLATIONS.get(language) or TRANSLATIONS["en"]
    if key in table:
        return table[key]
    return TRANSLATIONS["en"].get(key, key)


def format_lateness(language: str, minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} {tr(language, 'minutesLate')}"
    return f"{minutes // 60} {tr(language, 'hoursLate')}"


def format_long_date(language: str, day: date) -> str:
    lang = language if language in DAY_NAMES else "en"
    weekday = DAY_NAMES[lang][day.weekday()]
    month = MONTH_NAMES[lang][day.month - 1]
    if lang == "ar":
        return f"{weekday}، {day.day} {month} {day.year}"
    return f"{weekday}, {month} {day.day}, {day.year}"


def _vocab_label(mapping: dict, language: str, value: str) -> str:
    key = mapping.get(value)
    return tr(language, key) if key else value


def type_label(language: str, value: str) -> str:
    return _vocab_label(_TYPE_KEYS, language, value)


def frequency_label(language: str, value: str) -> str:
    return _vocab_label(_FREQUENCY_KEYS, language, value)


def kind_label(language: str, value: str) -> str:
    return _vocab_label(_KIND_KEYS, language, value)
