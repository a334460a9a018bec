# translations.py

TRANSLATIONS = {
    # =====================================================
    # ARABIC (DEFAULT DEPLOYMENT)
    # =====================================================
    "ar": {
        # ---------- SELECTION ----------
        "ask_recipient_name": "وش اسم الشخص اللي ودك ترسله الشهاده",
        "invalid_certificate": "يرجى اختيار رقم صحيح من قائمة الشهادات.",

        # ---------- RECIPIENT ----------
        "invalid_name": "يرجى إدخال اسم صحيح.",
        "ask_recipient_number": (
            "ادخل رقم واتساب المستلم مع رمز الدولة \n"
            "مثال: \n"
            "  عمان 96890000000 \n"
            "  966500000000 السعودية"
        ),
        "invalid_number": "يرجى إدخال رقم صحيح يشمل رمز الدولة.",
        "ask_custom_message": "اكتب رسالة قصيرة تظهر مع الشهادة (سطر واحد، {max} حرفاً كحد أقصى).",
        "invalid_custom_message": "الرسالة يجب أن تكون سطراً واحداً ولا تتجاوز {max} حرفاً.",

        # ---------- CONFIRMATION ----------
        "confirm_send": "سيتم إرسال الشهادة إلى {name}. هل تريد إرسالها الآن؟ (نعم/لا)",
        "answer_yes_no": "يرجى الرد بـ (نعم/لا).",
        "certificate_sent": "تم إرسال الشهادة بنجاح.",
        "ask_another": "هل ترغب في إرسال شهادة أخرى؟ (نعم/لا)",
        "session_ended": "تم إنهاء الجلسة. شكراً.",
        "session_stopped": "تم إلغاء الجلسة. أرسل 'مرحبا' أو 'ابدأ' للبدء من جديد.",
        "session_error": "حدث خطأ. أرسل 'مرحبا' أو 'ابدأ' لتجربة جديدة.",

        # ---------- PAYMENT ----------
        "checkout_link": "لإتمام الدفع، الرجاء زيارة الرابط التالي: {url}",
        "checkout_error": "حدث خطأ في إنشاء جلسة الدفع. حاول مرة أخرى.",
        "awaiting_payment": "ننتظر تأكيد الدفع...",
        "awaiting_payment_link": "ننتظر تأكيد الدفع...\n{url}",
        "payment_thanks": "شكراً للدفع! الشهادة تم إرسالها بنجاح إلى {name}.",
        "payment_success_page": "شكراً على الدفع! يمكنك العودة إلى التطبيق لإكمال العمليات.",
        "payment_cancel_page": "تم إلغاء الدفع. يمكنك العودة إلى التطبيق لإعادة المحاولة.",
    },

    # =====================================================
    # ENGLISH
    # =====================================================
    "en": {
        # ---------- SELECTION ----------
        "ask_recipient_name": "What is the name of the person you want to send the certificate to?",
        "invalid_certificate": "Please choose a valid number from the certificate list.",

        # ---------- RECIPIENT ----------
        "invalid_name": "Please enter a valid name.",
        "ask_recipient_number": (
            "Enter the recipient's WhatsApp number with the country code.\n"
            "Example:\n"
            "  Oman 96890000000\n"
            "  Saudi Arabia 966500000000"
        ),
        "invalid_number": "Please enter a valid number including the country code.",
        "ask_custom_message": "Write a short message to go with the certificate (one line, at most {max} characters).",
        "invalid_custom_message": "The message must be a single line of at most {max} characters.",

        # ---------- CONFIRMATION ----------
        "confirm_send": "The certificate will be sent to {name}. Send it now? (yes/no)",
        "answer_yes_no": "Please reply with yes or no.",
        "certificate_sent": "✅ Certificate sent successfully.",
        "ask_another": "Would you like to send another certificate? (yes/no)",
        "session_ended": "Session ended. Thank you.",
        "session_stopped": "Session cancelled. Send *Hi* to start again.",
        "session_error": "Something went wrong. Send *Hi* to start again.",

        # ---------- PAYMENT ----------
        "checkout_link": "💳 To complete the payment, please visit: {url}",
        "checkout_error": "We could not create the payment link. Please try again.",
        "awaiting_payment": "⏳ Waiting for payment confirmation...",
        "awaiting_payment_link": "⏳ Waiting for payment confirmation...\n{url}",
        "payment_thanks": "Thank you for your payment! The certificate was sent to {name}.",
        "payment_success_page": "Thank you for your payment! You can return to WhatsApp.",
        "payment_cancel_page": "Payment cancelled. You can return to WhatsApp and try again.",
    },
}

# Keyword tokens, matched case-insensitively after trimming
START_TOKENS = {"hi", "hello", "start", "مرحبا", "ابدأ"}
STOP_TOKENS = {"stop", "cancel", "إلغاء", "الغاء", "توقف"}
AFFIRMATIVE_TOKENS = {"yes", "y", "نعم"}
NEGATIVE_TOKENS = {"no", "n", "لا"}
